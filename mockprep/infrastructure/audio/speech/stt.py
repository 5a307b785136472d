"""
Speech-to-text functionality using Google Cloud Speech.
"""
import logging
from typing import Optional

import google.auth.exceptions
from google.api_core import exceptions as google_exceptions
from google.cloud import speech

from ....config import LANGUAGE_CODE, SAMPLE_RATE_TARGET
from ....errors import ServiceUnavailable

logger = logging.getLogger("speech_stt")


class GoogleTranscriber:
    """Synchronous recognition of one recorded candidate turn."""

    def __init__(self, language_code: str = LANGUAGE_CODE, client: Optional[speech.SpeechClient] = None):
        self.language_code = language_code
        self._client = client

    @property
    def client(self) -> speech.SpeechClient:
        if self._client is None:
            self._client = speech.SpeechClient()
        return self._client

    def transcribe(self, pcm16_bytes: bytes, sr_hz: int = SAMPLE_RATE_TARGET) -> str:
        """
        Returns the transcribed text, or an empty string if no speech was detected.
        Raises ServiceUnavailable when the API call fails.
        """
        audio = speech.RecognitionAudio(content=pcm16_bytes)
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sr_hz,
            language_code=self.language_code,
            enable_automatic_punctuation=True,
        )

        try:
            resp = self.client.recognize(config=config, audio=audio)
        except (google_exceptions.GoogleAPIError, google.auth.exceptions.GoogleAuthError) as e:
            logger.error("Speech recognition failed: %s", e)
            raise ServiceUnavailable(f"Speech recognition failed: {e}",
                                     user_message="Transcription failed. Please try again.") from e

        texts = [r.alternatives[0].transcript for r in resp.results if r.alternatives]
        return " ".join(texts).strip()
