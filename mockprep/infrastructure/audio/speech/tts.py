"""
Text-to-speech functionality using Google Cloud TTS, played through afplay/aplay.
"""
import os
import shutil
import subprocess
import tempfile
import logging
from typing import Optional

import google.auth.exceptions
from google.api_core import exceptions as google_exceptions
from google.cloud import texttospeech

from ....config import TTS_VOICE, TTS_SPEAKING_RATE, LANGUAGE_CODE, SAMPLE_RATE_TARGET
from ....errors import ServiceUnavailable

logger = logging.getLogger("speech_tts")


class GoogleSynthesizer:
    """Returns WAV bytes for a piece of interviewer text."""

    def __init__(self,
                 voice: str = TTS_VOICE,
                 speaking_rate: float = TTS_SPEAKING_RATE,
                 language_code: str = LANGUAGE_CODE,
                 client: Optional[texttospeech.TextToSpeechClient] = None):
        self.voice = voice
        self.speaking_rate = speaking_rate
        self.language_code = language_code
        self._client = client

    @property
    def client(self) -> texttospeech.TextToSpeechClient:
        if self._client is None:
            self._client = texttospeech.TextToSpeechClient()
        return self._client

    def synthesize(self, text: str) -> bytes:
        synthesis_input = texttospeech.SynthesisInput(text=text)
        voice_params = texttospeech.VoiceSelectionParams(
            language_code=self.language_code,
            name=self.voice,
        )
        # LINEAR16 responses carry a WAV header
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=SAMPLE_RATE_TARGET,
            speaking_rate=self.speaking_rate,
        )

        try:
            response = self.client.synthesize_speech(
                input=synthesis_input, voice=voice_params, audio_config=audio_config
            )
        except (google_exceptions.GoogleAPIError, google.auth.exceptions.GoogleAuthError) as e:
            logger.error("Google TTS failed: %s", e)
            raise ServiceUnavailable(f"Speech synthesis failed: {e}") from e

        if not response.audio_content:
            raise ServiceUnavailable("Speech synthesis returned no audio")
        return response.audio_content


class SubprocessPlayback:
    """A running afplay/aplay process and its temp file."""

    def __init__(self, process: subprocess.Popen, wav_path: str):
        self._process = process
        self._wav_path = wav_path

    def stop(self) -> None:
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._process.kill()
        self._cleanup()

    def wait(self) -> None:
        self._process.wait()
        self._cleanup()

    def _cleanup(self) -> None:
        try:
            os.unlink(self._wav_path)
        except FileNotFoundError:
            pass


class SubprocessAudioPlayer:
    """Plays WAV bytes with the platform command-line player."""

    PLAYERS = (["afplay"], ["aplay", "-q"])

    def __init__(self, command: Optional[list] = None):
        self.command = command or self._find_player()

    def _find_player(self) -> list:
        for cmd in self.PLAYERS:
            if shutil.which(cmd[0]):
                return list(cmd)
        raise ServiceUnavailable("No audio player found (tried afplay, aplay)")

    def play(self, wav_bytes: bytes) -> SubprocessPlayback:
        with tempfile.NamedTemporaryFile(suffix='.wav', delete=False) as tmp_file:
            wav_path = tmp_file.name
            tmp_file.write(wav_bytes)

        try:
            process = subprocess.Popen(
                self.command + [wav_path],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            os.unlink(wav_path)
            raise
        return SubprocessPlayback(process, wav_path)
