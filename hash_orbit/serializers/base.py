from typing import Any


class BaseSerializer:
    """
    Turns ring representations and shard values into bytes and back.
    Subclasses are built with the ``OPTIONS`` dict they were configured by.
    """

    def __init__(self, options):
        pass

    def dumps(self, value: Any) -> bytes:
        raise NotImplementedError

    def loads(self, value: bytes) -> Any:
        raise NotImplementedError
