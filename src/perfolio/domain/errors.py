"""
Error types for the valuation and performance engine.

Two classes of failure exist:

- ``SchemaValidationError``: the ingested document does not have the
  expected structure. Always non-recoverable; nothing is loaded.
- ``EngineException``: a computation request failed. Each carries an
  ``EngineErrorCode`` and a ``recoverable`` flag telling the caller whether a
  retry makes sense or the session must be re-initialized.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class EngineErrorCode(str, Enum):
    """Error codes surfaced to consumers of the engine."""

    STATE_NOT_INITIALIZED = "STATE_NOT_INITIALIZED"
    CALCULATION_OVERFLOW = "CALCULATION_OVERFLOW"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    WORKER_TERMINATED = "WORKER_TERMINATED"


@dataclass(frozen=True)
class EngineError:
    """Plain error value handed to the consumer."""

    code: EngineErrorCode
    message: str
    recoverable: bool


class EngineException(Exception):
    """Raised by the engine session and worker."""

    def __init__(self, code: EngineErrorCode, message: str, recoverable: bool = False):
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_engine_error(self) -> EngineError:
        return EngineError(code=self.code, message=self.message, recoverable=self.recoverable)


class SchemaValidationError(ValueError):
    """Raised when a document does not match the expected structure."""

    def __init__(self, message: str, issues: Iterable[str] = ()):
        self.issues = list(issues)
        if self.issues:
            message = f"{message}: " + "; ".join(self.issues)
        super().__init__(message)


def parse_engine_error(err: BaseException) -> EngineError:
    """
    Map any exception to an EngineError.

    EngineExceptions keep their code; everything else is treated as a
    recoverable calculation failure.
    """
    if isinstance(err, EngineException):
        return err.to_engine_error()

    return EngineError(
        code=EngineErrorCode.CALCULATION_OVERFLOW,
        message=str(err) or err.__class__.__name__,
        recoverable=True,
    )
