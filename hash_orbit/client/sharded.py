import logging
import re
from typing import Any, Optional, Union

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from hash_orbit import pool
from hash_orbit.exceptions import ConnectionInterrupted
from hash_orbit.util import get_serializer, make_ring

_main_exceptions = (RedisConnectionError, RedisTimeoutError)


class ShardClient:
    """
    Redis client that spreads keys over several servers with a hash ring.

    The server urls double as ring node identifiers. Each key is written to
    ``REPLICATION`` servers, picked clockwise from the key's position.
    """

    _findhash = re.compile(r".*\{(.*)\}.*", re.I)

    def __init__(self, servers, options: Optional[dict[str, Any]] = None) -> None:
        if isinstance(servers, str):
            servers = servers.split(",")
        self._server = [server for server in servers if server]

        if not self._server:
            error_message = "Missing connections string"
            raise ImproperlyConfigured(error_message)

        self._options = options or {}

        self._replication = self._options.get("REPLICATION", 1)
        if not isinstance(self._replication, int) or self._replication < 1:
            error_message = "REPLICATION value must be a positive integer"
            raise ImproperlyConfigured(error_message)

        self._serializer = get_serializer(self._options)
        self.connection_factory = pool.get_connection_factory(options=self._options)
        self.logger = logging.getLogger(
            getattr(settings, "HASH_ORBIT_LOGGER", __name__)
        )

        self._ring = make_ring(self._server, self._options)
        self._serverdict = self.connect()

    def __contains__(self, key) -> bool:
        return self.has_key(key)

    @property
    def ring(self):
        return self._ring

    def connect(self) -> dict[str, Redis]:
        connection_dict = {}
        for name in self._server:
            connection_dict[name] = self.connection_factory.connect(name)
        return connection_dict

    def add_server(self, name: str) -> None:
        self._ring.add(name)
        if name not in self._serverdict:
            self._server.append(name)
            self._serverdict[name] = self.connection_factory.connect(name)

    def remove_server(self, name: str) -> None:
        if self._ring.nodes == {name}:
            error_message = "Cannot remove the last server"
            raise ImproperlyConfigured(error_message)

        self._ring.remove(name)
        client = self._serverdict.pop(name, None)
        if client is not None:
            self._server.remove(name)
            self.disconnect(client)
            self.connection_factory.discard_connection_pool(name)

    def _routing_key(self, _key) -> str:
        key = str(_key)
        g = self._findhash.match(key)
        if g is not None and len(g.groups()) > 0 and g.groups()[0]:
            key = g.groups()[0]
        return key

    def get_server_name(self, key) -> Optional[str]:
        return self._ring.get(self._routing_key(key))

    def get_server(self, key) -> Redis:
        name = self.get_server_name(key)
        return self._serverdict[name]

    def get_server_names(self, key, count: Optional[int] = None) -> list[str]:
        if count is None:
            count = self._replication
        return self._ring.get_n(self._routing_key(key), count)

    def get_servers(self, key, count: Optional[int] = None) -> list[Redis]:
        return [self._serverdict[name] for name in self.get_server_names(key, count)]

    def set(self, key, value, timeout: Optional[float] = None) -> bool:
        """
        Persist a value on every replica of ``key``, with an optional
        expiration in seconds.
        """
        nvalue = self.encode(value)
        result = True
        for client in self.get_servers(key):
            try:
                result = bool(client.set(key, nvalue, ex=timeout)) and result
            except _main_exceptions as e:
                raise ConnectionInterrupted(connection=client) from e
        return result

    def get(self, key, default=None):
        """
        Read ``key`` from the first reachable replica.
        """
        client = None
        error = None
        for name in self.get_server_names(key):
            client = self._serverdict[name]
            try:
                value = client.get(key)
            except _main_exceptions as e:
                self.logger.warning("Replica %s unreachable for %r", name, key)
                error = e
                continue

            if value is None:
                return default
            return self.decode(value)

        if error is not None:
            raise ConnectionInterrupted(connection=client) from error
        return default

    def delete(self, key) -> int:
        res = 0
        for client in self.get_servers(key):
            try:
                res += client.delete(key)
            except _main_exceptions as e:
                raise ConnectionInterrupted(connection=client) from e
        return res

    def has_key(self, key) -> bool:
        """
        Test if key exists on its primary server.
        """
        client = self.get_server(key)
        try:
            return client.exists(key) == 1
        except _main_exceptions as e:
            raise ConnectionInterrupted(connection=client) from e

    def decode(self, value) -> Any:
        """
        Decode the given value.
        """
        try:
            value = int(value)
        except (ValueError, TypeError):
            value = self._serializer.loads(value)
        return value

    def encode(self, value) -> Union[bytes, int]:
        """
        Encode the given value.
        """

        if isinstance(value, bool) or not isinstance(value, int):
            return self._serializer.dumps(value)

        return value

    def disconnect(self, client: Redis) -> None:
        self.connection_factory.disconnect(client)

    def close(self) -> None:
        close_flag = self._options.get(
            "CLOSE_CONNECTION",
            getattr(settings, "HASH_ORBIT_CLOSE_CONNECTION", False),
        )
        if close_flag:
            self.do_close_clients()

    def do_close_clients(self) -> None:
        for client in self._serverdict.values():
            self.disconnect(client)
