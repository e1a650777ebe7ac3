# app/services/archive.py
from __future__ import annotations
import asyncio
import base64
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from google.cloud import storage
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


def archive_key(assignment_name: str, student_email: str) -> str:
    # nessuna collision avoidance: una nuova consegna sovrascrive la precedente
    return assignment_name + student_email + " submission"


class ArchiveStore(ABC):

    @abstractmethod
    async def store(self, key: str, content: bytes) -> bool:
        raise NotImplementedError


def gcs_client_from_b64(encoded_credentials: str) -> storage.Client:
    """Costruisce un client GCS da credenziali service account JSON in base64."""
    info = json.loads(base64.b64decode(encoded_credentials, validate=True))
    credentials = service_account.Credentials.from_service_account_info(info)
    return storage.Client(project=info.get("project_id"), credentials=credentials)


class GcsArchiveStore(ArchiveStore):
    """
    Scrive la submission come singolo oggetto nel bucket configurato.

    Client e writer sono aperti per ogni chiamata e chiusi su ogni percorso
    di uscita; l'oggetto esistente con la stessa key viene sovrascritto.
    """

    def __init__(
        self,
        *,
        encoded_credentials: str,
        bucket_name: str,
        client_factory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.encoded_credentials = encoded_credentials
        self.bucket_name = bucket_name
        self.client_factory = client_factory or gcs_client_from_b64

    async def store(self, key: str, content: bytes) -> bool:
        try:
            await asyncio.to_thread(self._write, key, content)
        except Exception:
            logger.exception("Scrittura su GCS bucket fallita",
                             extra={"bucket": self.bucket_name, "key": key})
            return False
        logger.info("Submission archiviata",
                    extra={"bucket": self.bucket_name, "key": key, "size": len(content)})
        return True

    def _write(self, key: str, content: bytes) -> None:
        if not self.bucket_name:
            raise ValueError("bucket_name non configurato")
        client = self.client_factory(self.encoded_credentials)
        try:
            blob = client.bucket(self.bucket_name).blob(key)
            # il close del writer finalizza l'upload anche in caso di errore
            with blob.open("wb") as writer:
                writer.write(content)
        finally:
            logger.debug("Chiusura client GCS")
            client.close()
