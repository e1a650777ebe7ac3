# app/services/audit.py
from __future__ import annotations
import logging
from typing import Optional

from app.database.dispatch_repository import DispatchRepository
from app.schemas.outcome import DispatchRecord, PipelineOutcome

logger = logging.getLogger(__name__)


class AuditRecorder:
    def __init__(self, repo: DispatchRepository) -> None:
        self.repo = repo

    async def record(
        self,
        dispatch_id: Optional[str],
        recipient: str,
        outcome: PipelineOutcome,
        timestamp: str,
    ) -> bool:
        record = DispatchRecord.build(dispatch_id, recipient, outcome, timestamp)
        try:
            await self.repo.insert_dispatch(record)
        except Exception:
            logger.exception("Errore salvataggio record di audit",
                             extra={"recipient": recipient, "status": record.status})
            return False
        logger.info("Audit record salvato",
                    extra={"sent_id": record.sent_id, "recipient": recipient, "status": record.status})
        return True
