# app/services/pipeline.py
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from app.schemas.events import EventDecodeError, SubmissionEvent, decode_envelope
from app.schemas.outcome import PipelineOutcome, PipelineRunResult
from app.services.archive import archive_key

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, url: str) -> tuple[bytes, bool]: ...

class Archiver(Protocol):
    async def store(self, key: str, content: bytes) -> bool: ...

class Notifier(Protocol):
    async def send(self, recipient: str, outcome: PipelineOutcome,
                   submission_url: str, assignment_name: str) -> tuple[str, bool]: ...

class Recorder(Protocol):
    async def record(self, dispatch_id: Optional[str], recipient: str,
                     outcome: PipelineOutcome, timestamp: str) -> bool: ...


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SubmissionPipeline:
    """
    Orchestratore: fetch -> archive -> notify -> record.

    Nessuno step interrompe la run: i fallimenti di fetch/archive portano
    l'outcome a FAILED, notify e record vengono sempre eseguiti. L'unico
    abort e' la decodifica del payload.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        archiver: Archiver,
        notifier: Notifier,
        recorder: Recorder,
        process_all_records: bool = False,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.fetcher = fetcher
        self.archiver = archiver
        self.notifier = notifier
        self.recorder = recorder
        self.process_all_records = process_all_records
        self.clock = clock

    async def handle_payload(self, raw: str | bytes) -> list[PipelineRunResult]:
        try:
            events = decode_envelope(raw, process_all=self.process_all_records)
        except EventDecodeError as exc:
            logger.error("Errore decodifica trigger: run abortita", extra={"error": str(exc)})
            return []
        return [await self.run(event) for event in events]

    async def run(self, event: SubmissionEvent) -> PipelineRunResult:
        logger.info("Submission ricevuta",
                    extra={"assignment": event.assignment_name, "submission_url": event.submission_url})
        outcome = PipelineOutcome.SUCCEEDED

        content, fetched = await self.fetcher.fetch(event.submission_url)
        outcome = outcome.fold(fetched)

        key = archive_key(event.assignment_name, event.student_email)
        archived = await self.archiver.store(key, content)
        outcome = outcome.fold(archived)

        dispatch_id, notified = await self.notifier.send(
            event.student_email, outcome, event.submission_url, event.assignment_name
        )
        if not notified:
            logger.warning("Notifica non inviata, procedo con l'audit",
                           extra={"recipient": event.student_email})

        recorded = await self.recorder.record(dispatch_id, event.student_email, outcome, self.clock())

        result = PipelineRunResult(
            event=event,
            archive_key=key,
            fetched=fetched,
            archived=archived,
            notified=notified,
            recorded=recorded,
            dispatch_id=dispatch_id or "",
            outcome=outcome,
        )
        logger.info("Run completata",
                    extra={"outcome": outcome.value, "archive_key": key, "dispatch_id": result.dispatch_id})
        return result
