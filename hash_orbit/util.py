from typing import Any, Callable, Optional

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from hash_orbit.hash_ring import DEFAULT_REPLICAS, HashRing
from hash_orbit.serializers.base import BaseSerializer

DEFAULT_HASH_FUNCTION = "hash_orbit.hashing.murmur3_32"
DEFAULT_SERIALIZER = "hash_orbit.serializers.json.JSONSerializer"


def get_hash_function(path: Optional[str] = None) -> Callable[[str], int]:
    try:
        return import_string(path or DEFAULT_HASH_FUNCTION)
    except ImportError as e:
        error_message = f"HASH_FUNCTION '{path}' could not be imported"
        raise ImproperlyConfigured(error_message) from e


def get_replicas(options: dict[str, Any]) -> int:
    replicas = options.get("REPLICAS", DEFAULT_REPLICAS)
    if isinstance(replicas, bool) or not isinstance(replicas, int) or replicas <= 0:
        error_message = "REPLICAS value must be a positive integer"
        raise ImproperlyConfigured(error_message)
    return replicas


def make_ring(nodes, options: dict[str, Any]) -> HashRing:
    """
    Build a ring from a node list and an ``OPTIONS`` style dict
    (``REPLICAS``, ``HASH_FUNCTION``).
    """
    if isinstance(nodes, str):
        nodes = [node for node in nodes.split(",") if node]

    return HashRing(
        nodes,
        replicas=get_replicas(options),
        hash_function=get_hash_function(options.get("HASH_FUNCTION")),
    )


def get_serializer(options: dict[str, Any]) -> BaseSerializer:
    serializer_cls = import_string(options.get("SERIALIZER", DEFAULT_SERIALIZER))
    return serializer_cls(options=options)


def dumps_ring(ring: HashRing, serializer: Optional[BaseSerializer] = None) -> bytes:
    if serializer is None:
        serializer = get_serializer({})
    return serializer.dumps(ring.to_representation())


def loads_ring(
    value: bytes,
    serializer: Optional[BaseSerializer] = None,
    hash_function: Optional[Callable[[str], int]] = None,
) -> HashRing:
    if serializer is None:
        serializer = get_serializer({})
    return HashRing.from_representation(
        serializer.loads(value), hash_function=hash_function
    )
