"""
Validation module - validator request/response protocol and summaries.
"""

from agentregistry.validation.registry import ValidationRegistry
from agentregistry.validation.types import (
    MAX_RESPONSE,
    ValidationRecord,
    ValidationStatus,
    ValidationSummary,
)

__all__ = [
    "ValidationRegistry",
    "ValidationRecord",
    "ValidationStatus",
    "ValidationSummary",
    "MAX_RESPONSE",
]
