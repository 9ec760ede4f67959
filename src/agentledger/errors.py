"""Error kinds shared by every layer.

Gateways translate backend failures into these exceptions; the tool
surface turns them into ``{"error_code", "message"}`` payloads.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable, user-visible error categories."""

    unauthorized = "unauthorized"
    invalid_argument = "invalid_argument"
    not_found = "not_found"
    out_of_range = "out_of_range"
    unavailable = "unavailable"
    internal = "internal"


_CLIENT_ERRORS = {
    ErrorKind.unauthorized,
    ErrorKind.invalid_argument,
    ErrorKind.not_found,
    ErrorKind.out_of_range,
}


class AgentLedgerError(Exception):
    """Base class for all agentledger errors."""

    kind: ErrorKind = ErrorKind.internal

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def is_client_error(self) -> bool:
        """True when the caller, not the system, is at fault."""
        return self.kind in _CLIENT_ERRORS

    def to_payload(self) -> dict[str, str]:
        return {"error_code": self.kind.value, "message": self.message}


class Unauthorized(AgentLedgerError):
    """Caller lacks the ownership or commit capability required."""

    kind = ErrorKind.unauthorized


class InvalidArgument(AgentLedgerError):
    """Empty or malformed input."""

    kind = ErrorKind.invalid_argument


class NotFound(AgentLedgerError):
    """Unknown agent id or memory key."""

    kind = ErrorKind.not_found


class OutOfRange(AgentLedgerError):
    """Pagination offset beyond the bounds of a non-empty collection."""

    kind = ErrorKind.out_of_range


class Unavailable(AgentLedgerError):
    """Transient ledger or reasoning failure, including timeouts."""

    kind = ErrorKind.unavailable


class Internal(AgentLedgerError):
    """Unexpected failure."""

    kind = ErrorKind.internal
