import bisect
import logging
from collections.abc import Iterable, Iterator
from typing import Any, Callable, Optional

from hash_orbit.exceptions import EmptyIdentifier, IdentifierTooLong
from hash_orbit.hashing import murmur3_32

logger = logging.getLogger(__name__)

DEFAULT_REPLICAS = 150
MAX_IDENTIFIER_LENGTH = 1000

NODE_IDENTIFIER = "Node identifier"
KEY = "Key"


def validate_identifier(value: str, name: str) -> str:
    """
    Reject empty identifiers and identifiers longer than
    ``MAX_IDENTIFIER_LENGTH``. ``name`` ends up in the error message.
    """
    if not value:
        raise EmptyIdentifier(name)
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise IdentifierTooLong(name, len(value), MAX_IDENTIFIER_LENGTH)
    return value


class HashRing:
    """
    Consistent hashing ring with virtual nodes.

    Every physical node is placed ``replicas`` times on a 32 bit circle, at
    ``hash_function("<node>:<i>")``. A key belongs to the first position
    clockwise from ``hash_function(key)``.

    Instances are not safe for concurrent mutation. Readers may share a ring
    as long as no ``add``/``remove`` runs at the same time.
    """

    def __init__(
        self,
        nodes: Iterable[str] = (),
        replicas: int = DEFAULT_REPLICAS,
        hash_function: Optional[Callable[[str], int]] = None,
    ) -> None:
        if isinstance(replicas, bool) or not isinstance(replicas, int):
            error_message = "replicas must be an integer"
            raise ValueError(error_message)
        if replicas <= 0:
            error_message = f"replicas must be a positive integer, got {replicas}"
            raise ValueError(error_message)

        self._replicas: int = replicas
        self._hash: Callable[[str], int] = hash_function or murmur3_32
        self._ring: dict[int, str] = {}
        self._sorted_keys: list[int] = []

        for node in nodes:
            self.add(node)

    @property
    def replicas(self) -> int:
        return self._replicas

    @property
    def hash_function(self) -> Callable[[str], int]:
        return self._hash

    @property
    def nodes(self) -> set[str]:
        return set(self._ring.values())

    @property
    def size(self) -> int:
        return len(self.nodes)

    @property
    def positions(self) -> int:
        return len(self._sorted_keys)

    def _node_positions(self, node: str) -> list[int]:
        return [self._hash(f"{node}:{x}") for x in range(self._replicas)]

    def _rebuild(self) -> None:
        self._sorted_keys = sorted(self._ring)

    def add(self, node: str) -> None:
        validate_identifier(node, NODE_IDENTIFIER)

        for position in self._node_positions(node):
            owner = self._ring.get(position)
            if owner is not None and owner != node:
                logger.warning(
                    "Position %d of %r already owned by %r, overwriting",
                    position,
                    node,
                    owner,
                )
            self._ring[position] = node

        self._rebuild()
        logger.debug("Added %r to %s", node, self)

    def remove(self, node: str) -> None:
        validate_identifier(node, NODE_IDENTIFIER)

        for position in self._node_positions(node):
            self._ring.pop(position, None)

        self._rebuild()
        logger.debug("Removed %r from %s", node, self)

    def _find_index(self, key: str) -> int:
        """
        Index of the first position >= hash(key), wrapping to 0 past the
        largest position. The ring must not be empty.
        """
        idx = bisect.bisect_left(self._sorted_keys, self._hash(key))
        if idx == len(self._sorted_keys):
            idx = 0
        return idx

    def get(self, key: str) -> Optional[str]:
        validate_identifier(key, KEY)

        if not self._sorted_keys:
            return None

        return self._ring[self._sorted_keys[self._find_index(key)]]

    def iter_nodes(self, key: str) -> Iterator[str]:
        """
        Yield the distinct physical nodes met walking clockwise from the
        position of ``key``, each once. The walk visits every position at
        most once.
        """
        validate_identifier(key, KEY)

        if not self._sorted_keys:
            return

        # Snapshot, so a rebuild during iteration does not shift the walk
        sorted_keys = self._sorted_keys
        total = len(sorted_keys)
        start = self._find_index(key)
        seen: set[str] = set()

        for offset in range(total):
            node = self._ring.get(sorted_keys[(start + offset) % total])
            if node is None or node in seen:
                continue
            seen.add(node)
            yield node

    def get_n(self, key: str, count: int) -> list[str]:
        validate_identifier(key, KEY)

        if count <= 0:
            return []

        nodes = []
        for node in self.iter_nodes(key):
            nodes.append(node)
            if len(nodes) >= count:
                break
        return nodes

    def to_representation(self) -> dict[str, Any]:
        return {"nodes": sorted(self.nodes), "replicas": self._replicas}

    @classmethod
    def from_representation(
        cls,
        value: dict[str, Any],
        hash_function: Optional[Callable[[str], int]] = None,
    ) -> "HashRing":
        """
        Rebuild a ring from the output of ``to_representation``. Positions
        are recomputed, so ``hash_function`` must match the one used by the
        ring that produced ``value``.
        """
        return cls(
            value["nodes"], replicas=value["replicas"], hash_function=hash_function
        )

    def __call__(self, key: str) -> Optional[str]:
        return self.get(key)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, node: str) -> bool:
        return node in self._ring.values()

    def __str__(self) -> str:
        return (
            f"HashRing(nodes={self.size}, positions={self.positions},"
            f" replicas={self._replicas})"
        )

    def __repr__(self) -> str:
        return (
            f"<HashRing nodes={self.size} positions={self.positions}"
            f" replicas={self._replicas}>"
        )
