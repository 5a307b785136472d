"""
Vertex AI REST client for LLM interactions.
"""
import json
import logging
from typing import Optional, Dict, Any, List, Sequence

import requests
import google.auth
import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import (
    VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS, REPLY_TEMPERATURE,
)
from ...errors import ServiceUnavailable, MalformedResponse
from ...interview.models import Message, Speaker
from ...interview.prompts import KICKOFF_MESSAGE

logger = logging.getLogger("llm_client")

_GEMINI_ROLES = {Speaker.CANDIDATE: "user", Speaker.INTERVIEWER: "model"}


def build_contents(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """
    Map the transcript onto Gemini ``contents``.

    The kickoff line always opens the history since Gemini expects a user turn
    first. Adjacent turns from the same side (a failed candidate turn followed
    by its retry) are merged into one content entry.
    """
    contents: List[Dict[str, Any]] = [{"role": "user", "parts": [{"text": KICKOFF_MESSAGE}]}]
    for message in messages:
        role = _GEMINI_ROLES[message.role]
        if contents[-1]["role"] == role:
            contents[-1]["parts"].append({"text": message.text})
        else:
            contents.append({"role": role, "parts": [{"text": message.text}]})
    return contents


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self.model_resource = f"projects/{self.project}/locations/{self.location}/publishers/google/models/{self.model}"
        self._token = None
        self.timeout = timeout

    def _refresh_token(self):
        """Refresh the OAuth token for API calls."""
        if self.credentials_json:
            creds = service_account.Credentials.from_service_account_file(
                self.credentials_json,
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )
        else:
            creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])

        auth_req = google.auth.transport.requests.Request()
        creds.refresh(auth_req)
        self._token = creds.token

    def _ensure_token(self):
        if not self._token:
            try:
                self._refresh_token()
            except google.auth.exceptions.GoogleAuthError as e:
                raise ServiceUnavailable(f"Google credentials unavailable: {e}") from e

    def generate_content(
        self,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
    ) -> str:
        """Call ``generateContent``; returns the first text part or an empty string."""
        self._ensure_token()
        url = f"{self.base_url}/{self.model_resource}:generateContent"

        body: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

        try:
            resp = requests.post(url, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceUnavailable(f"Vertex REST request failed: {e}") from e

        if resp.status_code == 401:
            # Token expired; next call refreshes
            self._token = None
        if resp.status_code >= 400:
            raise ServiceUnavailable(f"Vertex REST error {resp.status_code}: {resp.text}")

        return self._parse_response_text(resp.json())

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        # Vertex schema: candidates[0].content.parts[*].text
        cands = resp_json.get("candidates") or []
        if cands:
            content = cands[0].get("content") or {}
            for part in content.get("parts") or []:
                if isinstance(part, dict) and isinstance(part.get("text"), str):
                    return part["text"]
            if isinstance(content.get("text"), str):
                return content["text"]

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        logger.warning("No text in Vertex response: %s", json.dumps(resp_json, separators=(",", ":"))[:500])
        return ""

    def generate_reply(self, system_instruction: str, messages: Sequence[Message]) -> str:
        """One interviewer reply for the given history."""
        logger.debug("Requesting interviewer reply over %d messages", len(messages))
        text = self.generate_content(
            build_contents(messages),
            system_instruction=system_instruction,
            temperature=REPLY_TEMPERATURE,
        )
        return text.strip()

    def generate_json(self, prompt: str, max_output_tokens: int = 2048) -> Dict[str, Any]:
        """
        Generate a JSON object from the LLM, tolerating fences or chatter around it.
        Automatically appends instruction to respond with JSON only.
        """
        prompt_json = prompt.strip() + "\n\nRespond ONLY with minified JSON."
        logger.debug("Sending JSON prompt to LLM...")

        text = self.generate_content(
            [{"role": "user", "parts": [{"text": prompt_json}]}],
            temperature=0.0,
            max_output_tokens=max_output_tokens,
        )
        logger.debug("Raw LLM output: %s", repr(text))
        return extract_json(text)


def extract_json(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating code fences or chatter around it."""
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except ValueError as e:
        logger.warning("json.loads failed: %s", e)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        try:
            parsed = json.loads(text[start:end + 1])
            if isinstance(parsed, dict):
                logger.debug("Parsed JSON from substring successfully")
                return parsed
        except ValueError as e:
            logger.warning("Substring parse also failed: %s", e)

    raise MalformedResponse(f"LLM did not return a JSON object: {text!r}")
