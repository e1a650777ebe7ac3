from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from app.schemas.events import SubmissionEvent


class PipelineOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def fold(self, step_ok: bool) -> "PipelineOutcome":
        # FAILED e' terminale per tutta la run
        if self is PipelineOutcome.FAILED or not step_ok:
            return PipelineOutcome.FAILED
        return PipelineOutcome.SUCCEEDED

    @property
    def audit_code(self) -> int:
        return 1 if self is PipelineOutcome.SUCCEEDED else 0


@dataclass(frozen=True)
class DispatchRecord:
    sent_id: str
    to_email_address: str
    status: int
    time: str

    @classmethod
    def build(cls, dispatch_id: str | None, recipient: str,
              outcome: PipelineOutcome, timestamp: str) -> "DispatchRecord":
        return cls(
            sent_id=dispatch_id or "",
            to_email_address=recipient,
            status=outcome.audit_code,
            time=timestamp,
        )

    def as_row(self) -> dict:
        return {
            "sentId": self.sent_id,
            "toEmailAddress": self.to_email_address,
            "status": self.status,
            "time": self.time,
        }


@dataclass(frozen=True)
class PipelineRunResult:
    """Esito di una singola run: flag per step + outcome finale."""

    event: SubmissionEvent
    archive_key: str
    fetched: bool
    archived: bool
    notified: bool
    recorded: bool
    dispatch_id: str
    outcome: PipelineOutcome
