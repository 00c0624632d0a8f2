import logging
from collections.abc import Iterable

import pytest
from django.core.exceptions import ImproperlyConfigured
from pytest_mock import MockerFixture
from redis.exceptions import ConnectionError as RedisConnectionError

from hash_orbit.client import ShardClient
from hash_orbit.exceptions import ConnectionInterrupted
from hash_orbit.serializers.msgpack import MSGPackSerializer

SERVERS = [
    "redis://127.0.0.1:6379/1",
    "redis://127.0.0.1:6379/2",
    "redis://127.0.0.1:6379/3",
]


@pytest.fixture
def shard_client(fake_servers) -> Iterable[ShardClient]:
    yield ShardClient(SERVERS, {"REPLICAS": 50})


@pytest.fixture
def replicated_client(fake_servers) -> Iterable[ShardClient]:
    yield ShardClient(SERVERS, {"REPLICAS": 50, "REPLICATION": 2})


def stored_on(client: ShardClient, key: str) -> set[str]:
    return {
        name
        for name, connection in client._serverdict.items()
        if connection.exists(key)
    }


class TestConfiguration:
    def test_missing_servers(self, fake_servers):
        with pytest.raises(ImproperlyConfigured):
            ShardClient([])
        with pytest.raises(ImproperlyConfigured):
            ShardClient("")

    def test_comma_separated_servers(self, fake_servers):
        client = ShardClient(",".join(SERVERS))
        assert client.ring.nodes == set(SERVERS)

    @pytest.mark.parametrize("replication", [0, -1, "2"])
    def test_invalid_replication(self, fake_servers, replication):
        with pytest.raises(ImproperlyConfigured, match="REPLICATION"):
            ShardClient(SERVERS, {"REPLICATION": replication})

    def test_ring_options(self, shard_client):
        assert shard_client.ring.replicas == 50
        assert shard_client.ring.positions == 150

    def test_serializer_option(self, fake_servers):
        client = ShardClient(
            SERVERS,
            {"SERIALIZER": "hash_orbit.serializers.msgpack.MSGPackSerializer"},
        )
        assert isinstance(client._serializer, MSGPackSerializer)
        client.set("key", {"a": [1, 2]})
        assert client.get("key") == {"a": [1, 2]}


class TestRouting:
    def test_routes_through_ring(self, shard_client):
        for key in (f"user:{x}" for x in range(100)):
            name = shard_client.get_server_name(key)
            assert name == shard_client.ring.get(key)
            assert shard_client.get_server(key) is shard_client._serverdict[name]

    def test_hash_tag(self, shard_client):
        for x in range(50):
            assert shard_client.get_server_name(
                f"{{user{x}}}:profile"
            ) == shard_client.ring.get(f"user{x}")

    def test_server_names_follow_replication(self, replicated_client):
        names = replicated_client.get_server_names("user:1")
        assert names == replicated_client.ring.get_n("user:1", 2)
        assert replicated_client.get_server_names("user:1", 3)[:2] == names
        assert len(replicated_client.get_servers("user:1")) == 2


class TestOperations:
    def test_set_get(self, shard_client):
        assert shard_client.set("key", {"value": 1})
        assert shard_client.get("key") == {"value": 1}
        assert stored_on(shard_client, "key") == {
            shard_client.get_server_name("key")
        }

    def test_get_default(self, shard_client):
        assert shard_client.get("missing") is None
        assert shard_client.get("missing", default="x") == "x"

    def test_integers_stored_raw(self, shard_client):
        shard_client.set("counter", 5)
        assert shard_client.get_server("counter").get("counter") == b"5"
        assert shard_client.get("counter") == 5

    def test_timeout(self, shard_client):
        shard_client.set("key", "value", timeout=100)
        assert 0 < shard_client.get_server("key").ttl("key") <= 100

    def test_replicated_set(self, replicated_client):
        replicated_client.set("key", "value")
        assert stored_on(replicated_client, "key") == set(
            replicated_client.get_server_names("key")
        )

    def test_delete(self, replicated_client):
        replicated_client.set("key", "value")
        assert replicated_client.delete("key") == 2
        assert replicated_client.delete("key") == 0
        assert stored_on(replicated_client, "key") == set()

    def test_has_key(self, shard_client):
        assert not shard_client.has_key("key")
        shard_client.set("key", "value")
        assert shard_client.has_key("key")
        assert "key" in shard_client


class TestFailover:
    def test_read_from_next_replica(self, replicated_client, fake_servers, caplog):
        replicated_client.set("key", "value")
        primary, secondary = replicated_client.get_server_names("key")
        fake_servers[primary].connected = False

        with caplog.at_level(logging.WARNING, logger="hash_orbit.client.sharded"):
            assert replicated_client.get("key") == "value"

        assert primary in caplog.text

    def test_all_replicas_down(self, replicated_client, fake_servers):
        for name in replicated_client.get_server_names("key"):
            fake_servers[name].connected = False

        with pytest.raises(ConnectionInterrupted) as excinfo:
            replicated_client.get("key")

        assert isinstance(excinfo.value.__cause__, RedisConnectionError)
        assert str(excinfo.value).startswith("Redis ConnectionError")

    def test_write_to_down_server(self, shard_client, fake_servers):
        fake_servers[shard_client.get_server_name("key")].connected = False
        with pytest.raises(ConnectionInterrupted):
            shard_client.set("key", "value")


class TestMembership:
    def test_add_server(self, shard_client):
        url = "redis://127.0.0.1:6379/4"
        shard_client.add_server(url)
        assert url in shard_client.ring
        assert url in shard_client._serverdict

        routed = {shard_client.get_server_name(f"user:{x}") for x in range(500)}
        assert url in routed

    def test_remove_server(self, shard_client, mocker: MockerFixture):
        mock = mocker.patch.object(shard_client.connection_factory, "disconnect")
        removed = SERVERS[1]

        shard_client.remove_server(removed)

        assert removed not in shard_client.ring
        assert removed not in shard_client._serverdict
        assert mock.call_count == 1
        routed = {shard_client.get_server_name(f"user:{x}") for x in range(500)}
        assert removed not in routed

    def test_remove_unknown_server(self, shard_client, mocker: MockerFixture):
        mock = mocker.patch.object(shard_client.connection_factory, "disconnect")
        shard_client.remove_server("redis://127.0.0.1:6379/9")
        assert shard_client.ring.size == 3
        assert not mock.called

    def test_remove_last_server(self, fake_servers):
        client = ShardClient(SERVERS[:1])

        with pytest.raises(ImproperlyConfigured, match="last server"):
            client.remove_server(SERVERS[0])

        assert client.ring.nodes == {SERVERS[0]}
        client.set("key", "value")
        assert client.has_key("key")
        assert client.get("key") == "value"

    def test_remove_server_discards_pool(self, shard_client, mocker: MockerFixture):
        spy = mocker.spy(shard_client.connection_factory, "discard_connection_pool")
        shard_client.remove_server(SERVERS[0])
        spy.assert_called_once_with(SERVERS[0])


class TestClose:
    def test_close_without_flag(self, shard_client, mocker: MockerFixture):
        mock = mocker.patch.object(shard_client.connection_factory, "disconnect")
        shard_client.close()
        assert not mock.called

    def test_close_with_option(self, fake_servers, mocker: MockerFixture):
        client = ShardClient(SERVERS, {"CLOSE_CONNECTION": True})
        mock = mocker.patch.object(client.connection_factory, "disconnect")
        client.close()
        assert mock.call_count == len(SERVERS)
