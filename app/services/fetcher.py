# app/services/fetcher.py
from __future__ import annotations
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class SubmissionFetcher:
    """
    Scarica il contenuto della submission con un singolo tentativo.

    Errori di trasporto, status non 2xx o lettura incompleta del body sono
    un esito normale: ritorna (b"", False) e non solleva mai.
    """

    def __init__(
        self,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> tuple[bytes, bool]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        logger.error("Download fallito: HTTP status %s",
                                     response.status_code, extra={"url": url})
                        return b"", False
                    content = await response.aread()
        except httpx.HTTPError as exc:
            logger.error("Download file error: %s", exc, extra={"url": url})
            return b"", False
        except (httpx.InvalidURL, ValueError) as exc:
            # URL vuoto o non parsabile
            logger.error("URL di submission non valido: %s", exc, extra={"url": url})
            return b"", False
        except Exception:
            logger.exception("Errore inatteso durante il download", extra={"url": url})
            return b"", False

        logger.info("Submission scaricata", extra={"url": url, "size": len(content)})
        return content, True
