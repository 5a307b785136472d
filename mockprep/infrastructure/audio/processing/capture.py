"""
Microphone acquisition through PyAudio.

``PyAudioMicrophone.open`` starts a callback stream and hands every 100 ms chunk
of mono PCM16 to the caller; the returned handle must be closed to release the
device. Acquisition failures are mapped onto the microphone error taxonomy.
"""
import errno
import logging
from typing import Callable, Optional, Tuple

from ....config import SAMPLE_RATE_CAPTURE, CHANNELS, CHUNK_MS
from ....errors import PermissionDenied, DeviceUnavailable, DeviceIssue, MicrophoneError
from ....utils import with_suppressed_audio_warnings

logger = logging.getLogger("audio_capture")

# PortAudio error codes surfaced as OSError.errno
PA_INVALID_DEVICE = -9996
PA_DEVICE_UNAVAILABLE = -9985
PA_INVALID_CHANNEL_COUNT = -9998

ChunkCallback = Callable[[bytes], None]


def classify_os_error(exc: OSError) -> MicrophoneError:
    """Map a PortAudio/OS failure onto a distinct microphone error."""
    code = exc.errno
    if isinstance(exc, PermissionError) or code in (errno.EACCES, errno.EPERM):
        return PermissionDenied(str(exc))
    if code in (PA_DEVICE_UNAVAILABLE, errno.EBUSY):
        return DeviceUnavailable(DeviceIssue.DEVICE_BUSY, str(exc))
    if code in (PA_INVALID_DEVICE, PA_INVALID_CHANNEL_COUNT, errno.ENODEV, errno.ENOENT):
        return DeviceUnavailable(DeviceIssue.NO_DEVICE, str(exc))
    return MicrophoneError(str(exc))


class PyAudioStreamHandle:
    """Open input stream; ``close`` is idempotent and always terminates PortAudio."""

    def __init__(self, pa, stream, sample_rate: int):
        self._pa = pa
        self._stream = stream
        self.sample_rate = sample_rate
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.stop_stream()
            self._stream.close()
        finally:
            self._pa.terminate()
            logger.debug("Microphone released")


class PyAudioMicrophone:
    """Default-input microphone source."""

    def __init__(self,
                 input_device: Optional[int] = None,
                 sample_rate: Optional[int] = None,
                 chunk_ms: int = CHUNK_MS):
        self.input_device = input_device
        self.sample_rate = sample_rate
        self.chunk_ms = chunk_ms

    def _pick_device(self, pa) -> Tuple[int, int]:
        """Return (device_index, sample_rate) or raise DeviceUnavailable(NO_DEVICE)."""
        if self.input_device is not None:
            info = pa.get_device_info_by_index(self.input_device)
        else:
            try:
                info = pa.get_default_input_device_info()
            except (OSError, IOError):
                info = None
                for i in range(pa.get_device_count()):
                    candidate = pa.get_device_info_by_index(i)
                    if int(candidate.get("maxInputChannels", 0)) > 0:
                        info = candidate
                        break
        if not info or int(info.get("maxInputChannels", 0)) < 1:
            raise DeviceUnavailable(DeviceIssue.NO_DEVICE, "no input device with channels")

        rate = self.sample_rate or int(info.get("defaultSampleRate") or SAMPLE_RATE_CAPTURE)
        logger.info("Using input device %s (%s) at %d Hz", info.get("index"), info.get("name"), rate)
        return int(info["index"]), rate

    @with_suppressed_audio_warnings
    def open(self, on_chunk: ChunkCallback) -> PyAudioStreamHandle:
        import pyaudio

        pa = pyaudio.PyAudio()
        try:
            device_index, rate = self._pick_device(pa)
            frames_per_buffer = int(rate * self.chunk_ms / 1000)

            def _callback(in_data, frame_count, time_info, status):
                on_chunk(in_data)
                return (None, pyaudio.paContinue)

            stream = pa.open(
                format=pyaudio.paInt16,
                channels=CHANNELS,
                rate=rate,
                input=True,
                input_device_index=device_index,
                frames_per_buffer=frames_per_buffer,
                stream_callback=_callback,
            )
            stream.start_stream()
        except OSError as e:
            pa.terminate()
            raise classify_os_error(e) from e
        except BaseException:
            pa.terminate()
            raise

        return PyAudioStreamHandle(pa, stream, rate)
