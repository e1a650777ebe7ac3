# app/services/notifier.py
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.schemas.outcome import PipelineOutcome

logger = logging.getLogger(__name__)

SIGNATURE = "Automatically Sent by Assignment Submission System"


@dataclass(frozen=True)
class EmailMessage:
    sender: str
    recipient: str
    subject: str
    text: str


def confirmation_message(sender: str, recipient: str, submission_url: str, assignment_name: str) -> EmailMessage:
    return EmailMessage(
        sender=sender,
        recipient=recipient,
        subject=f"Assignment Submission Confirmation: {assignment_name}",
        text=(
            f"Dear {recipient},\n\n"
            f"We are pleased to inform you that your assignment titled {assignment_name} "
            f"has been successfully submitted: {submission_url}\n\n"
            "Thank you for completing the work on time. Your dedication is essential "
            "to the progression of our course.\n\n"
            "Should you have any questions or require further assistance, please do not "
            "hesitate to reach out.\n\n"
            "Wishing you continued success in your studies!\n\n\n"
            "Warm regards,\n"
            f"{SIGNATURE}"
        ),
    )


def remediation_message(sender: str, recipient: str, submission_url: str, assignment_name: str) -> EmailMessage:
    return EmailMessage(
        sender=sender,
        recipient=recipient,
        subject="Action Required: Assignment Submission Failed",
        text=(
            f"Dear {recipient},\n\n"
            "It appears that there was an issue with your recent attempt to submit the "
            f"assignment {assignment_name}. Unfortunately, we did not receive your submission "
            f"successfully. The URL you provided for your submission is: {submission_url}.\n\n"
            "Please review the submission link or file for any errors and attempt to submit "
            "again. If the problem persists, do not hesitate to contact us for support.\n\n"
            "We understand that technical issues can be frustrating and appreciate your "
            "patience in resolving this matter.\n\n"
            "Best regards,\n"
            f"{SIGNATURE}"
        ),
    )


def build_message(sender: str, recipient: str, outcome: PipelineOutcome,
                  submission_url: str, assignment_name: str) -> EmailMessage:
    if outcome is PipelineOutcome.SUCCEEDED:
        return confirmation_message(sender, recipient, submission_url, assignment_name)
    return remediation_message(sender, recipient, submission_url, assignment_name)


class MailgunNotifier:
    """
    Invia una sola email per invocazione tramite l'API HTTP di Mailgun.

    L'invio e' limitato da un timeout complessivo (30s di default): oltre il
    limite la richiesta viene abbandonata e il dispatch id resta vuoto.
    """

    def __init__(
        self,
        *,
        api_key: str,
        domain: str,
        sender: str,
        base_url: str = "https://api.mailgun.net",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.domain = domain
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send(
        self,
        recipient: str,
        outcome: PipelineOutcome,
        submission_url: str,
        assignment_name: str,
    ) -> tuple[str, bool]:
        message = build_message(self.sender, recipient, outcome, submission_url, assignment_name)
        try:
            dispatch_id = await asyncio.wait_for(self._post(message), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Invio email abbandonato dopo %ss", self.timeout,
                         extra={"recipient": recipient, "outcome": outcome.value})
            return "", False
        except httpx.HTTPStatusError as exc:
            logger.error("Mailgun ha rifiutato il messaggio: HTTP %s",
                         exc.response.status_code, extra={"recipient": recipient})
            return "", False
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Errore invio email: %s", exc, extra={"recipient": recipient})
            return "", False
        except Exception:
            logger.exception("Errore inatteso durante l'invio email", extra={"recipient": recipient})
            return "", False

        logger.info("Email inviata",
                    extra={"recipient": recipient, "outcome": outcome.value, "dispatch_id": dispatch_id})
        return dispatch_id, True

    async def _post(self, message: EmailMessage) -> str:
        if not self.domain:
            raise ValueError("email_domain non configurato")
        url = f"{self.base_url}/v3/{self.domain}/messages"
        data = {
            "from": message.sender,
            "to": message.recipient,
            "subject": message.subject,
            "text": message.text,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(url, auth=("api", self.api_key), data=data)
            response.raise_for_status()
            body = response.json()
            if not isinstance(body, dict):
                logger.warning("Risposta Mailgun senza id", extra={"body": str(body)[:200]})
                return ""
            return body.get("id") or ""
