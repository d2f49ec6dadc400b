"""
Runtime module - serialized, metered, all-or-nothing call execution.
"""

from agentregistry.runtime.chain import Call, CallStats, Chain

__all__ = [
    "Call",
    "CallStats",
    "Chain",
]
