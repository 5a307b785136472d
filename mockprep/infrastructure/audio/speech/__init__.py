"""Speech recognition and synthesis clients."""

from .stt import GoogleTranscriber
from .tts import GoogleSynthesizer, SubprocessAudioPlayer, SubprocessPlayback

__all__ = ["GoogleTranscriber", "GoogleSynthesizer", "SubprocessAudioPlayer", "SubprocessPlayback"]
