"""Registration + dispatch engine.

registry.py     ExecutorRegistry -- name index and key index
result.py       ExecutorOutcome / DispatchReport -- aggregated outcomes
sentinel.py     Sentinel -- watch loop, key execution, execute-by-name
"""

from keysentinel.dispatch.registry import ExecutorRegistry
from keysentinel.dispatch.result import DispatchReport, ExecutorOutcome
from keysentinel.dispatch.sentinel import Sentinel, SentinelStats

__all__ = [
    "ExecutorRegistry",
    "DispatchReport",
    "ExecutorOutcome",
    "Sentinel",
    "SentinelStats",
]
