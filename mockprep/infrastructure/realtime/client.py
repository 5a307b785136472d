"""
Realtime session negotiation over HTTPS.

Two calls: mint a short-lived client secret for a voice session, then trade
the local SDP offer for the service's answer using that secret.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from ...config import (
    REALTIME_BASE_URL, REALTIME_MODEL, REALTIME_VOICE, REALTIME_TRANSCRIPTION_MODEL,
    REALTIME_VAD_THRESHOLD, REALTIME_PREFIX_PADDING_MS, REALTIME_SILENCE_DURATION_MS,
    REALTIME_TIMEOUT,
)
from ...errors import MalformedResponse, ServiceUnavailable

logger = logging.getLogger("realtime_client")


@dataclass(frozen=True)
class RealtimeCredential:
    value: str
    expires_at: Optional[int] = None
    session: Dict[str, Any] = field(default_factory=dict)


def _error_message(response: httpx.Response) -> str:
    if response.status_code == 401:
        return "Invalid OpenAI API key. Please check OPENAI_API_KEY."
    if response.status_code == 429:
        return "Rate limit exceeded. Please try again later."
    try:
        error = response.json().get("error")
    except ValueError:
        return response.text or "Failed to create realtime session"
    if isinstance(error, dict):
        return error.get("message") or "Failed to create realtime session"
    return str(error or "Failed to create realtime session")


class RealtimeSessionClient:
    """Async HTTP client for the realtime session endpoints."""

    def __init__(self,
                 api_key: str,
                 base_url: str = REALTIME_BASE_URL,
                 model: str = REALTIME_MODEL,
                 voice: str = REALTIME_VOICE,
                 timeout: float = REALTIME_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not api_key:
            raise ValueError("A realtime API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.voice = voice
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http_client

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    def session_body(self, instructions: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "voice": self.voice,
            "instructions": instructions,
            "input_audio_transcription": {"model": REALTIME_TRANSCRIPTION_MODEL},
            "turn_detection": {
                "type": "server_vad",
                "threshold": REALTIME_VAD_THRESHOLD,
                "prefix_padding_ms": REALTIME_PREFIX_PADDING_MS,
                "silence_duration_ms": REALTIME_SILENCE_DURATION_MS,
            },
        }

    async def create_credential(self, instructions: str) -> RealtimeCredential:
        """Ephemeral secret for one session; raises MalformedResponse if the secret is missing."""
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/realtime/sessions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self.session_body(instructions),
            )
        except httpx.HTTPError as e:
            raise ServiceUnavailable(f"Realtime session request failed: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error("Realtime session error %d: %s", response.status_code, message)
            raise ServiceUnavailable(f"Realtime session error {response.status_code}: {response.text}",
                                     user_message=message)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse("Realtime session response is not JSON") from e

        secret = (data.get("client_secret") or {}).get("value") if isinstance(data, dict) else None
        if not secret:
            raise MalformedResponse("Realtime session response has no client_secret.value",
                                    user_message="Invalid session response. Please check your OpenAI API key.")
        logger.info("Realtime session %s created", data.get("id"))
        return RealtimeCredential(
            value=secret,
            expires_at=data["client_secret"].get("expires_at"),
            session=data,
        )

    async def exchange_sdp(self, offer_sdp: str, token: str) -> str:
        """Post our offer, return the answer SDP untouched."""
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/realtime",
                params={"model": self.model},
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/sdp"},
                content=offer_sdp.encode("utf-8"),
            )
        except httpx.HTTPError as e:
            raise ServiceUnavailable(f"SDP exchange failed: {e}") from e

        if response.is_error:
            raise ServiceUnavailable(f"SDP exchange error {response.status_code}: {response.text}",
                                     user_message=_error_message(response))
        if not response.text.strip():
            raise MalformedResponse("SDP exchange returned an empty answer")
        return response.text
