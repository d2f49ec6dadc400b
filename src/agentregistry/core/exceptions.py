"""
Exception hierarchy for agentregistry.

All registry errors inherit from RegistryError and carry a numeric ``code``.
Codes are partitioned by component:

- identity registry: 1000s
- validation registry: 2000s
- reputation registry: 3000s
- host (call execution): 9000s

Registry operations raise; the host rolls the call back and, through
``Chain.execute``, hands the numeric code back to the caller.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class IdentityErrorCode(IntEnum):
    """Identity registry error codes."""

    ERR_NOT_AUTHORIZED = 1000
    ERR_AGENT_NOT_FOUND = 1001
    ERR_ID_OVERFLOW = 1002
    ERR_METADATA_LIMIT = 1003
    ERR_RESERVED_KEY = 1004
    ERR_INVALID_SENDER = 1005
    ERR_WALLET_ALREADY_SET = 1006
    ERR_EXPIRED_SIGNATURE = 1007
    ERR_INVALID_SIGNATURE = 1008
    ERR_WALLET_CONFLICT = 1009


class ValidationErrorCode(IntEnum):
    """Validation registry error codes."""

    ERR_NOT_AUTHORIZED = 2000
    ERR_AGENT_NOT_FOUND = 2001
    ERR_VALIDATION_NOT_FOUND = 2002
    ERR_VALIDATION_EXISTS = 2003
    ERR_INVALID_VALIDATOR = 2004
    ERR_INVALID_RESPONSE = 2005


class ReputationErrorCode(IntEnum):
    """Reputation registry error codes."""

    ERR_NOT_AUTHORIZED = 3000
    ERR_AGENT_NOT_FOUND = 3001
    ERR_FEEDBACK_NOT_FOUND = 3002
    ERR_ALREADY_REVOKED = 3003
    ERR_INVALID_VALUE = 3004
    ERR_SELF_FEEDBACK = 3005
    ERR_INVALID_SIGNATURE = 3007
    ERR_AUTH_EXPIRED = 3008
    ERR_INDEX_LIMIT_EXCEEDED = 3009
    ERR_EMPTY_URI = 3010
    ERR_INVALID_DECIMALS = 3011


class HostErrorCode(IntEnum):
    """Errors raised by the call host itself."""

    ERR_READ_BUDGET_EXCEEDED = 9000
    ERR_WRITE_BUDGET_EXCEEDED = 9001


ErrorCode = IdentityErrorCode | ValidationErrorCode | ReputationErrorCode | HostErrorCode


class RegistryError(Exception):
    """
    Base exception for all registry errors.

    Catch this to handle any rejected call.

    Example:
        >>> try:
        ...     reputation.revoke_feedback(client, agent_id, 1)
        ... except RegistryError as e:
        ...     print(f"Rejected with {e.code}")
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    @property
    def code_name(self) -> str:
        return self.code.name

    def __str__(self) -> str:
        base = f"[{int(self.code)} {self.code.name}] {self.message}"
        if self.details:
            return f"{base} | Details: {self.details}"
        return base


class ConfigurationError(Exception):
    """
    Configuration is missing or invalid.

    Raised when:
    - Environment variables hold unparsable values
    - Budgets are too small to serve a single page
    """

    pass


class NotAuthorizedError(RegistryError):
    """Caller lacks owner, operator, validator or client standing."""

    pass


class NotFoundError(RegistryError):
    """Agent, feedback or validation record does not exist."""

    pass


class AlreadyExistsError(RegistryError):
    """A record keyed by caller-supplied data already exists."""

    pass


class SelfDealingError(RegistryError):
    """
    Owner or operator acting on their own agent.

    Raised for self-feedback and self-validation.
    """

    pass


class QuotaExceededError(RegistryError):
    """Approved feedback quota or signed index limit is exhausted."""

    pass


class AlreadyRevokedError(RegistryError):
    """Feedback was already revoked."""

    pass


class ReservedKeyError(RegistryError):
    """Metadata write used a key reserved for internal bookkeeping."""

    pass


class WalletConflictError(RegistryError):
    """Wallet is already bound to a different agent."""

    pass


class WalletAlreadySetError(RegistryError):
    """Wallet is already bound to this agent."""

    pass


class ExpiredSignatureError(RegistryError):
    """A signed authorization is past its deadline."""

    pass


class InvalidSignatureError(RegistryError):
    """A signed authorization did not verify against the expected signer."""

    pass


class InvalidInputError(RegistryError):
    """
    Input validation error.

    Raised when:
    - value decimals exceed 18 or the value leaves the int128 range
    - a validation response exceeds 100
    - a URI is empty
    - the declared sender does not match the caller
    - too many metadata entries are supplied at once
    """

    pass


class ResourceBudgetError(RegistryError):
    """
    The call exceeded the host's per-call read or write budget.

    Attributes:
        used: Number of operations performed when the budget tripped
        budget: Configured ceiling
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        used: int,
        budget: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
        self.used = used
        self.budget = budget


__all__ = [
    "IdentityErrorCode",
    "ValidationErrorCode",
    "ReputationErrorCode",
    "HostErrorCode",
    "ErrorCode",
    "RegistryError",
    "ConfigurationError",
    "NotAuthorizedError",
    "NotFoundError",
    "AlreadyExistsError",
    "SelfDealingError",
    "QuotaExceededError",
    "AlreadyRevokedError",
    "ReservedKeyError",
    "WalletConflictError",
    "WalletAlreadySetError",
    "ExpiredSignatureError",
    "InvalidSignatureError",
    "InvalidInputError",
    "ResourceBudgetError",
]
