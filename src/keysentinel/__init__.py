"""
keysentinel - run executors when watched keys change.

Watches named keys in a key/value store and, on every change, invokes the
executors registered for that key with the freshly fetched context tree.

- keysentinel.core: protocols, errors, logging, settings, config files
- keysentinel.dispatch: registry and the Sentinel dispatcher
- keysentinel.clients: in-memory and Redis store clients
- keysentinel.executors: function, command and template executors
"""

__version__ = "0.1.0"

from keysentinel.core.errors import DispatchError, ExecutorNotFoundError, SentinelError
from keysentinel.core.protocols import Executor, WatchClient
from keysentinel.dispatch import DispatchReport, ExecutorOutcome, ExecutorRegistry, Sentinel

__all__ = [
    "__version__",
    "Sentinel",
    "ExecutorRegistry",
    "DispatchReport",
    "ExecutorOutcome",
    "Executor",
    "WatchClient",
    "SentinelError",
    "DispatchError",
    "ExecutorNotFoundError",
]
