from hash_orbit.client.sharded import ShardClient

__all__ = ["ShardClient"]
