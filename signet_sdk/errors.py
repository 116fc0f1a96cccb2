"""
signet_sdk.errors
-----------------
Error taxonomy for the Signet SDK, plus the Result value returned by
operations whose failure is an expected outcome (registry rejections).

Local precondition violations are raised immediately and never reach the
network. Registry rejections are wrapped in a failed Result instead.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class SignetError(Exception):
    code = "E_SIGNET"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ParamMissing(SignetError):
    code = "E_PARAM_MISSING"


class ParamInvalid(SignetError):
    code = "E_PARAM_INVALID"


class DecodeError(ParamInvalid):
    """Malformed key or signature text."""
    code = "E_DECODE"


class InvalidPreviousSign(ParamInvalid):
    code = "E_INVALID_PREV_SIGN"


class OrgKeyNotSet(SignetError):
    code = "E_ORG_KEY_NOT_SET"


class EntityNotOwned(SignetError):
    """The agent holds no ownership key set for the entity."""
    code = "E_ENTITY_NOT_OWNED"


class RegistryRejected(SignetError):
    """Non-200 response from the registry (or a transport failure)."""
    code = "E_SIGNET_API"

    def __init__(self, status: int, data: Any = None, message: str = ""):
        super().__init__(message or f"registry returned status {status}")
        self.status = status
        self.data = data


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[SignetError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def fail(cls, error: SignetError) -> "Result[T]":
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> T:
        """Return the value, or raise the held error."""
        if not self.ok:
            raise self.error or SignetError("operation failed")
        return self.value
