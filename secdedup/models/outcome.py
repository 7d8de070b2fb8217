"""Typed per-item outcomes for batch operations.

Batch loops never use exceptions to decide whether to continue. Each item
produces an ``Outcome``; ``recoverable`` outcomes are reported and the batch
moves on, a ``fatal`` outcome stops the operation.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class OutcomeStatus(str, Enum):
    """Result of processing one item."""

    DONE = "done"
    SKIPPED = "skipped"
    INVALID = "invalid"
    PENDING = "pending"
    FAILED = "failed"


class Outcome(BaseModel):
    """Outcome of processing one article."""

    status: OutcomeStatus
    subject_id: Optional[str] = Field(None, description="Article or publication id")
    message: Optional[str] = Field(None, description="Human-readable detail")
    detail: Dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.DONE, OutcomeStatus.SKIPPED)

    @property
    def recoverable(self) -> bool:
        """Item was not processed but the batch may continue."""
        return self.status in (OutcomeStatus.INVALID, OutcomeStatus.PENDING)

    @property
    def fatal(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @classmethod
    def done(cls, subject_id: str, **detail: Any) -> "Outcome":
        return cls(status=OutcomeStatus.DONE, subject_id=subject_id, detail=detail)

    @classmethod
    def skipped(cls, subject_id: str, message: str) -> "Outcome":
        return cls(status=OutcomeStatus.SKIPPED, subject_id=subject_id, message=message)

    @classmethod
    def invalid(cls, subject_id: Optional[str], message: str) -> "Outcome":
        return cls(status=OutcomeStatus.INVALID, subject_id=subject_id, message=message)

    @classmethod
    def pending(cls, subject_id: str, message: str) -> "Outcome":
        return cls(status=OutcomeStatus.PENDING, subject_id=subject_id, message=message)

    @classmethod
    def failed(cls, subject_id: Optional[str], message: str) -> "Outcome":
        return cls(status=OutcomeStatus.FAILED, subject_id=subject_id, message=message)
