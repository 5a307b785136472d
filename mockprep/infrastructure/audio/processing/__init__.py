"""Audio capture and signal processing."""

from .processing import (
    pcm16_to_float, remove_dc, resample, normalize_audio,
    prepare_for_transcription, frequency_buckets,
)
from .capture import PyAudioMicrophone, PyAudioStreamHandle, classify_os_error

__all__ = [
    "pcm16_to_float", "remove_dc", "resample", "normalize_audio",
    "prepare_for_transcription", "frequency_buckets",
    "PyAudioMicrophone", "PyAudioStreamHandle", "classify_os_error",
]
