"""
Reputation module - client feedback, revocation, responses and summaries.
"""

from agentregistry.reputation.registry import ReputationRegistry
from agentregistry.reputation.types import (
    INT128_MAX,
    INT128_MIN,
    FeedbackApproval,
    FeedbackRecord,
    FeedbackSummary,
    ResponseRecord,
)

__all__ = [
    "ReputationRegistry",
    "FeedbackApproval",
    "FeedbackRecord",
    "FeedbackSummary",
    "ResponseRecord",
    "INT128_MAX",
    "INT128_MIN",
]
