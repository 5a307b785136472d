import pytest
import requests

from mockprep.errors import MalformedResponse, ServiceUnavailable
from mockprep.infrastructure.llm import client as llm_client
from mockprep.infrastructure.llm import VertexRestClient, build_contents, extract_json
from mockprep.interview.models import Message, MessageStatus, Speaker
from mockprep.interview.prompts import KICKOFF_MESSAGE


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


def make_client():
    client = VertexRestClient(project="demo-project", location="us-central1", model="gemini-2.5-flash")
    client._token = "token-123"
    return client


def reply_payload(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def test_build_contents_starts_with_kickoff_and_alternates():
    contents = build_contents([
        Message(Speaker.INTERVIEWER, "Hi, intro please?"),
        Message(Speaker.CANDIDATE, "I'm Sam."),
    ])

    assert contents == [
        {"role": "user", "parts": [{"text": KICKOFF_MESSAGE}]},
        {"role": "model", "parts": [{"text": "Hi, intro please?"}]},
        {"role": "user", "parts": [{"text": "I'm Sam."}]},
    ]


def test_build_contents_merges_failed_and_retried_turns():
    contents = build_contents([
        Message(Speaker.INTERVIEWER, "Q1"),
        Message(Speaker.CANDIDATE, "first try", MessageStatus.FAILED),
        Message(Speaker.CANDIDATE, "second try"),
    ])

    assert len(contents) == 3
    assert contents[-1] == {"role": "user", "parts": [{"text": "first try"}, {"text": "second try"}]}


def test_generate_reply_posts_system_instruction(monkeypatch):
    calls = []

    def fake_post(url, headers, json, timeout):
        calls.append({"url": url, "headers": headers, "json": json})
        return FakeResponse(payload=reply_payload("  What drew you to Acme?  "))

    monkeypatch.setattr(llm_client.requests, "post", fake_post)

    reply = make_client().generate_reply("Be rigorous.", [Message(Speaker.INTERVIEWER, "Hi")])

    assert reply == "What drew you to Acme?"
    call = calls[0]
    assert call["url"].endswith(
        "projects/demo-project/locations/us-central1/publishers/google/models/gemini-2.5-flash:generateContent"
    )
    assert call["headers"]["Authorization"] == "Bearer token-123"
    assert call["json"]["systemInstruction"] == {"parts": [{"text": "Be rigorous."}]}
    assert call["json"]["generationConfig"]["temperature"] == 0.7
    assert call["json"]["contents"][0]["role"] == "user"


def test_http_error_raises_service_unavailable(monkeypatch):
    monkeypatch.setattr(llm_client.requests, "post",
                        lambda *args, **kwargs: FakeResponse(status_code=503, text="overloaded"))

    with pytest.raises(ServiceUnavailable):
        make_client().generate_reply("x", [])


def test_unauthorized_clears_cached_token(monkeypatch):
    monkeypatch.setattr(llm_client.requests, "post",
                        lambda *args, **kwargs: FakeResponse(status_code=401, text="expired"))
    client = make_client()

    with pytest.raises(ServiceUnavailable):
        client.generate_reply("x", [])
    assert client._token is None


def test_network_error_raises_service_unavailable(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr(llm_client.requests, "post", boom)

    with pytest.raises(ServiceUnavailable):
        make_client().generate_reply("x", [])


def test_missing_text_yields_empty_reply(monkeypatch):
    monkeypatch.setattr(llm_client.requests, "post",
                        lambda *args, **kwargs: FakeResponse(payload={"candidates": [{"finishReason": "SAFETY"}]}))
    assert make_client().generate_reply("x", []) == ""


def test_generate_json_parses_fenced_output(monkeypatch):
    body = '```json\n{"score": 70, "summary": "ok"}\n```'
    seen = {}

    def fake_post(url, headers, json, timeout):
        seen["json"] = json
        return FakeResponse(payload=reply_payload(body))

    monkeypatch.setattr(llm_client.requests, "post", fake_post)

    assert make_client().generate_json("Score this.") == {"score": 70, "summary": "ok"}
    assert "systemInstruction" not in seen["json"]
    assert seen["json"]["generationConfig"]["temperature"] == 0.0


def test_extract_json_rejects_non_objects():
    with pytest.raises(MalformedResponse):
        extract_json("I cannot score this interview.")
    with pytest.raises(MalformedResponse):
        extract_json("[1, 2, 3]")
