"""
Basic audio processing functions including format conversions and normalization.
"""
from math import gcd

import numpy as np
from scipy.signal import resample_poly

from ....config import (
    TARGET_RMS, SAMPLE_RATE_TARGET, FFT_SIZE, VISUALIZER_BUCKETS,
    MIN_DECIBELS, MAX_DECIBELS,
)


def pcm16_to_float(pcm: bytes) -> np.ndarray:
    """Little-endian int16 bytes to float32 in [-1, 1]."""
    return np.frombuffer(pcm, dtype="<i2").astype(np.float32) / 32768.0


def float_to_pcm16(x: np.ndarray) -> np.ndarray:
    return (np.clip(x, -1.0, 1.0) * 32767.0).astype(np.int16)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    return x - np.mean(x)


def resample(x: np.ndarray, sr_in: int, sr_out: int = SAMPLE_RATE_TARGET) -> np.ndarray:
    """Polyphase resample between integer rates (48k -> 16k is up=1, down=3)."""
    if sr_in == sr_out:
        return x.astype(np.float32)
    g = gcd(sr_in, sr_out)
    return resample_poly(x, up=sr_out // g, down=sr_in // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms) if rms > 0 else 1.0
    return audio * gain


def prepare_for_transcription(pcm: bytes, sr_in: int, sr_out: int = SAMPLE_RATE_TARGET) -> bytes:
    """Captured PCM16 mono -> DC-free, resampled, RMS-normalised PCM16 mono."""
    x = pcm16_to_float(pcm)
    if x.size == 0:
        return b""
    x = normalize_audio(resample(remove_dc(x), sr_in, sr_out))
    return float_to_pcm16(x).tobytes()


def frequency_buckets(samples: np.ndarray,
                      n_buckets: int = VISUALIZER_BUCKETS,
                      fft_size: int = FFT_SIZE,
                      min_db: float = MIN_DECIBELS,
                      max_db: float = MAX_DECIBELS) -> np.ndarray:
    """
    Fixed-size magnitude snapshot for a level meter.

    Takes the newest ``fft_size`` samples, applies a Blackman window, and maps
    each bin's dB magnitude from [min_db, max_db] onto [0, 1]. The
    ``fft_size // 2`` bins are then averaged down to ``n_buckets`` values.
    """
    frame = np.zeros(fft_size, dtype=np.float32)
    tail = samples[-fft_size:]
    if tail.size:
        frame[-tail.size:] = tail

    spectrum = np.abs(np.fft.rfft(frame * np.blackman(fft_size)))[: fft_size // 2] / fft_size
    db = 20.0 * np.log10(spectrum + 1e-12)
    levels = np.clip((db - min_db) / (max_db - min_db), 0.0, 1.0)
    return levels.reshape(n_buckets, -1).mean(axis=1).astype(np.float32)
