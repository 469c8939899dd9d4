"""Store clients.

memory      InMemoryClient -- nested dict + queue, single process
redis       RedisClient -- keyspace notifications + flat keys, multi-node
"""

from keysentinel.clients.memory import InMemoryClient

__all__ = ["InMemoryClient"]
