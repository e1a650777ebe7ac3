import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest

from app.schemas.outcome import PipelineOutcome
from app.services.notifier import MailgunNotifier, build_message

def make_notifier(handler, **kwargs) -> MailgunNotifier:
    params = dict(api_key="key-123", domain="mg.example.com", sender="mailgun@mg.example.com")
    params.update(kwargs)
    return MailgunNotifier(transport=httpx.MockTransport(handler), **params)

@pytest.mark.asyncio
async def test_send_success_returns_dispatch_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"id": "<20261018@mg.example.com>", "message": "Queued. Thank you."})

    notifier = make_notifier(handler)

    dispatch_id, ok = await notifier.send("a@x.com", PipelineOutcome.SUCCEEDED, "https://ok/file", "HW1")

    assert ok
    assert dispatch_id == "<20261018@mg.example.com>"
    assert seen["url"] == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert seen["auth"] == "Basic " + base64.b64encode(b"api:key-123").decode()
    assert seen["form"]["to"] == ["a@x.com"]
    assert seen["form"]["from"] == ["mailgun@mg.example.com"]
    assert seen["form"]["subject"] == ["Assignment Submission Confirmation: HW1"]

@pytest.mark.asyncio
async def test_failed_outcome_uses_remediation_template():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"id": "<1@mg>"})

    notifier = make_notifier(handler)

    await notifier.send("a@x.com", PipelineOutcome.FAILED, "https://ok/file", "HW1")

    assert seen["form"]["subject"] == ["Action Required: Assignment Submission Failed"]
    assert "https://ok/file" in seen["form"]["text"][0]

def test_templates_mention_assignment_and_url():
    for outcome in PipelineOutcome:
        message = build_message("from@x.com", "a@x.com", outcome, "https://ok/file", "HW1")
        assert "HW1" in message.text
        assert "https://ok/file" in message.text
        assert message.text.startswith("Dear a@x.com,")
    assert (build_message("f", "a", PipelineOutcome.SUCCEEDED, "u", "HW1").subject
            != build_message("f", "a", PipelineOutcome.FAILED, "u", "HW1").subject)

@pytest.mark.asyncio
async def test_rejected_message_returns_empty_id():
    notifier = make_notifier(lambda request: httpx.Response(401, text="Forbidden"))

    assert await notifier.send("a@x.com", PipelineOutcome.SUCCEEDED, "u", "HW1") == ("", False)

@pytest.mark.asyncio
async def test_send_abandoned_after_timeout():
    async def slow_handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={"id": "<late@mg>"})

    notifier = make_notifier(slow_handler, timeout=0.05)

    dispatch_id, ok = await notifier.send("a@x.com", PipelineOutcome.SUCCEEDED, "u", "HW1")

    assert not ok
    assert dispatch_id == ""

@pytest.mark.asyncio
async def test_missing_domain_is_a_failure():
    calls = []
    notifier = make_notifier(lambda request: calls.append(request) or httpx.Response(200), domain="")

    assert await notifier.send("a@x.com", PipelineOutcome.FAILED, "u", "HW1") == ("", False)
    assert calls == []

@pytest.mark.asyncio
async def test_invalid_base_url_is_a_failure():
    notifier = make_notifier(lambda request: httpx.Response(200, json={"id": "<1@mg>"}),
                             base_url="https://api.mailgun.net:notaport")

    assert await notifier.send("a@x.com", PipelineOutcome.SUCCEEDED, "u", "HW1") == ("", False)

@pytest.mark.asyncio
async def test_non_object_response_yields_empty_id():
    notifier = make_notifier(lambda request: httpx.Response(200, json=["queued"]))

    dispatch_id, ok = await notifier.send("a@x.com", PipelineOutcome.SUCCEEDED, "u", "HW1")

    assert ok
    assert dispatch_id == ""
