from typing import Any

import msgpack

from hash_orbit.serializers.base import BaseSerializer


class MSGPackSerializer(BaseSerializer):
    def dumps(self, value: Any) -> bytes:
        return msgpack.packb(value, use_bin_type=True)

    def loads(self, value: bytes) -> Any:
        return msgpack.unpackb(value, raw=False)
