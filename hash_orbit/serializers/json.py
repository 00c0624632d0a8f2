import json
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder

from .base import BaseSerializer


class JSONSerializer(BaseSerializer):
    """
    Compact JSON with sorted keys, so equal ring representations always
    produce equal bytes.
    """

    encoder_class = DjangoJSONEncoder

    def dumps(self, value: Any) -> bytes:
        return json.dumps(
            value, cls=self.encoder_class, sort_keys=True, separators=(",", ":")
        ).encode()

    def loads(self, value: bytes) -> Any:
        return json.loads(value.decode())
