from __future__ import annotations
import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

class EventDecodeError(ValueError):
    """Il payload di trigger non contiene alcun messaggio processabile."""

class SubmissionEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_email: str
    submission_url: str
    assignment_name: str

def _records(envelope: Any, process_all: bool) -> list[Any]:
    if isinstance(envelope, dict) and "Records" in envelope:
        records = envelope["Records"]
        if not isinstance(records, list) or not records:
            raise EventDecodeError("Envelope senza Records")
        if not process_all and len(records) > 1:
            logger.info("Batch con %s record: processo solo il primo", len(records))
            records = records[:1]
        messages = []
        for record in records:
            try:
                messages.append(record["Sns"]["Message"])
            except (KeyError, TypeError) as exc:
                raise EventDecodeError(f"Record SNS malformato: {exc!r}") from exc
        return messages
    # publish diretto: il body e' gia' il messaggio
    return [envelope]

def _parse_message(message: Any) -> SubmissionEvent:
    try:
        if isinstance(message, (str, bytes)):
            return SubmissionEvent.model_validate_json(message)
        return SubmissionEvent.model_validate(message)
    except ValidationError as exc:
        raise EventDecodeError(str(exc)) from exc

def decode_envelope(raw: str | bytes, *, process_all: bool = False) -> list[SubmissionEvent]:
    """
    Decodifica il body del trigger in una lista di SubmissionEvent.

    Di default viene processato solo il primo record del batch; con
    process_all=True ogni record diventa una run indipendente.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventDecodeError("Body non UTF-8") from exc
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EventDecodeError(f"JSON non valido: {exc}") from exc

    messages = _records(envelope, process_all)
    events = [_parse_message(m) for m in messages]
    for event in events:
        empty = [name for name, value in event.model_dump().items() if not value]
        if empty:
            logger.warning("SubmissionEvent con campi vuoti", extra={"fields": empty})
    return events
