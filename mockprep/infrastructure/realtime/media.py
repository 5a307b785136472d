"""
Local media for the realtime channel: microphone track out, remote audio in.

Both wrap aiortc's contrib media helpers, which drive FFmpeg input and output
devices through PyAV.
"""
import sys
import logging
from typing import Optional

from aiortc.contrib.media import MediaBlackhole, MediaPlayer, MediaRecorder

from ...errors import MicrophoneError
from ..audio.processing.capture import classify_os_error

logger = logging.getLogger("realtime_media")


def default_devices():
    """(mic_file, mic_format, speaker_file, speaker_format) for this platform."""
    if sys.platform == "darwin":
        return ":0", "avfoundation", "default", "audiotoolbox"
    return "default", "pulse", "default", "pulse"


class MicrophoneSource:
    """An open microphone; ``audio`` is the track to send."""

    def __init__(self, player: MediaPlayer):
        self._player = player
        self.audio = player.audio

    def stop(self) -> None:
        # MediaPlayer releases the device once its last track stops
        if self.audio is not None:
            self.audio.stop()
            logger.debug("Realtime microphone released")


class RealtimeMedia:
    """Factory for the microphone source and the remote-audio sink."""

    def __init__(self,
                 mic_file: Optional[str] = None,
                 mic_format: Optional[str] = None,
                 speaker_file: Optional[str] = None,
                 speaker_format: Optional[str] = None,
                 play_remote_audio: bool = True):
        d_mic, d_mic_fmt, d_spk, d_spk_fmt = default_devices()
        self.mic_file = mic_file or d_mic
        self.mic_format = mic_format or d_mic_fmt
        self.speaker_file = speaker_file or d_spk
        self.speaker_format = speaker_format or d_spk_fmt
        self.play_remote_audio = play_remote_audio

    def open_microphone(self) -> MicrophoneSource:
        try:
            player = MediaPlayer(self.mic_file, format=self.mic_format)
        except OSError as e:
            raise classify_os_error(e) from e
        if player.audio is None:
            raise MicrophoneError(f"{self.mic_file} ({self.mic_format}) has no audio stream")
        return MicrophoneSource(player)

    def create_sink(self):
        """Consumer for the interviewer's voice; ``addTrack`` then ``await start()``."""
        if not self.play_remote_audio:
            return MediaBlackhole()
        return MediaRecorder(self.speaker_file, format=self.speaker_format)
