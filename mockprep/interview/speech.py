"""
Push-to-talk speech pipelines.

``SpeechCapturePipeline`` turns one microphone recording into text and feeds a
live level meter while recording. ``SpeechPlaybackPipeline`` voices interviewer
text and tells the caller, through ``on_ready``, the moment audio is about to
start so the transcript line can appear together with the voice.
"""
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from ..config import SAMPLE_RATE_CAPTURE, SAMPLE_RATE_TARGET, VISUALIZER_BUCKETS, VISUALIZER_FPS, FFT_SIZE
from ..errors import InterviewError, MicrophoneError, ServiceUnavailable
from ..infrastructure.audio.processing.capture import classify_os_error
from ..infrastructure.audio.processing.processing import (
    frequency_buckets, pcm16_to_float, prepare_for_transcription,
)

logger = logging.getLogger("speech_pipeline")


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"


class SpeechCapturePipeline:
    """
    ``IDLE -> RECORDING -> TRANSCRIBING -> IDLE``.

    ``microphone.open(on_chunk)`` must return a handle with ``close()``;
    ``transcriber.transcribe(pcm16, sample_rate)`` returns text.
    """

    def __init__(self,
                 microphone,
                 transcriber,
                 on_state_change: Optional[Callable[[CaptureState], None]] = None,
                 on_levels: Optional[Callable[[np.ndarray], None]] = None,
                 fps: int = VISUALIZER_FPS,
                 n_buckets: int = VISUALIZER_BUCKETS):
        self.microphone = microphone
        self.transcriber = transcriber
        self.on_state_change = on_state_change
        self.on_levels = on_levels
        self.fps = fps
        self.n_buckets = n_buckets

        self.state = CaptureState.IDLE
        self.transcript: Optional[str] = None
        self.error: Optional[InterviewError] = None
        self.levels = np.zeros(n_buckets, dtype=np.float32)

        self._chunks: List[bytes] = []
        self._chunks_lock = threading.Lock()
        self._handle = None
        self._sample_rate = SAMPLE_RATE_CAPTURE
        self._viz_stop = threading.Event()
        self._viz_thread: Optional[threading.Thread] = None

    def _set_state(self, state: CaptureState) -> None:
        self.state = state
        logger.debug("Capture state -> %s", state.value)
        if self.on_state_change:
            self.on_state_change(state)

    def start_listening(self) -> bool:
        """
        Acquire the microphone and start recording.

        Never raises for device problems: returns False and leaves the
        classified error on ``self.error``.
        """
        if self.state is not CaptureState.IDLE:
            logger.warning("start_listening ignored while %s", self.state.value)
            return False

        self.transcript = None
        self.error = None
        with self._chunks_lock:
            self._chunks = []

        try:
            handle = self.microphone.open(self._on_chunk)
        except MicrophoneError as e:
            return self._fail(e)
        except OSError as e:
            return self._fail(classify_os_error(e))

        self._handle = handle
        self._sample_rate = getattr(handle, "sample_rate", SAMPLE_RATE_CAPTURE)
        self._set_state(CaptureState.RECORDING)

        self._viz_stop.clear()
        self._viz_thread = threading.Thread(target=self._visualize, name="capture-visualizer", daemon=True)
        self._viz_thread.start()
        return True

    def _fail(self, error: MicrophoneError) -> bool:
        logger.error("Microphone unavailable: %s", error)
        self.error = error
        return False

    def _on_chunk(self, data: bytes) -> None:
        # Runs on the audio driver's thread
        if data:
            with self._chunks_lock:
                self._chunks.append(data)

    def _recent_samples(self) -> np.ndarray:
        with self._chunks_lock:
            tail = self._chunks[-1:] if self._chunks else []
        if not tail:
            return np.zeros(0, dtype=np.float32)
        return pcm16_to_float(tail[0])[-FFT_SIZE:]

    def _visualize(self) -> None:
        interval = 1.0 / self.fps
        while not self._viz_stop.wait(interval):
            self.levels = frequency_buckets(self._recent_samples(), n_buckets=self.n_buckets)
            if self.on_levels:
                self.on_levels(self.levels)

    def stop_listening(self, transcribe: bool = True) -> Optional[str]:
        """
        Stop recording and transcribe. A no-op outside RECORDING.

        Returns the recognised text, or None when nothing was captured,
        ``transcribe`` is False, or transcription failed (then ``self.error``
        is set).
        """
        if self.state is not CaptureState.RECORDING:
            return None

        try:
            self._viz_stop.set()
            if self._viz_thread is not None:
                self._viz_thread.join()
        finally:
            self._viz_thread = None
            self.levels = np.zeros(self.n_buckets, dtype=np.float32)
            handle, self._handle = self._handle, None
            try:
                if handle is not None:
                    handle.close()
            except Exception as e:
                logger.error("Microphone release failed: %s", e)
                self.error = classify_os_error(e) if isinstance(e, OSError) else MicrophoneError(str(e))

        with self._chunks_lock:
            chunks, self._chunks = self._chunks, []

        if self.error is not None:
            self._set_state(CaptureState.IDLE)
            return None

        if not chunks or not transcribe:
            logger.info("Skipping transcription (%d chunks)", len(chunks))
            self._set_state(CaptureState.IDLE)
            return None

        self._set_state(CaptureState.TRANSCRIBING)
        try:
            pcm = prepare_for_transcription(b"".join(chunks), self._sample_rate, SAMPLE_RATE_TARGET)
            self.transcript = self.transcriber.transcribe(pcm, SAMPLE_RATE_TARGET)
        except InterviewError as e:
            logger.error("Transcription failed: %s", e)
            self.error = e
            self.transcript = None
        except Exception as e:
            logger.error("Transcription failed unexpectedly: %s", e)
            self.error = ServiceUnavailable(f"Transcription failed: {e}",
                                            user_message="Transcription failed. Please try again.")
            self.transcript = None
        finally:
            self._set_state(CaptureState.IDLE)

        return self.transcript

    def clear_transcript(self) -> None:
        self.transcript = None


class PlaybackState(str, Enum):
    IDLE = "idle"
    SYNTHESIZING = "synthesizing"
    PLAYING = "playing"


class PlaybackRequest:
    """Handle for one ``speak`` call."""

    def __init__(self, text: str, generation: int):
        self.text = text
        self.generation = generation
        self.error: Optional[Exception] = None
        self.ready_fired = False
        self._cancelled = threading.Event()
        self._done = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the request played out, failed, or was superseded."""
        return self._done.wait(timeout)


class SpeechPlaybackPipeline:
    """
    At most one synthesis request and one playback per instance.

    ``synthesizer.synthesize(text)`` returns audio bytes; ``player.play(audio)``
    returns a handle with ``stop()`` and ``wait()``. A request superseded by a
    newer ``speak`` or by ``stop`` never fires ``on_ready``; a synthesis still
    in flight is abandoned and its result discarded.
    """

    def __init__(self, synthesizer, player):
        self.synthesizer = synthesizer
        self.player = player
        self.state = PlaybackState.IDLE
        self.error: Optional[Exception] = None

        self._lock = threading.RLock()
        self._generation = 0
        self._current: Optional[PlaybackRequest] = None
        self._playback = None

    def speak(self, text: str, on_ready: Optional[Callable[[], None]] = None) -> PlaybackRequest:
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            request = PlaybackRequest(text, self._generation)
            self._current = request
            self.error = None
            self.state = PlaybackState.SYNTHESIZING

        worker = threading.Thread(target=self._run, args=(request, on_ready),
                                  name=f"tts-{request.generation}", daemon=True)
        worker.start()
        return request

    def stop(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._current is not None:
            self._current._cancelled.set()
            logger.debug("Cancelled playback request %d", self._current.generation)
        if self._playback is not None:
            self._playback.stop()
        self._current = None
        self._playback = None
        self.state = PlaybackState.IDLE

    def _is_current(self, request: PlaybackRequest) -> bool:
        return self._current is request and not request.cancelled

    def _run(self, request: PlaybackRequest, on_ready: Optional[Callable[[], None]]) -> None:
        try:
            try:
                audio = self.synthesizer.synthesize(request.text)
            except Exception as e:
                logger.error("Synthesis failed: %s", e)
                request.error = e
                with self._lock:
                    if self._is_current(request):
                        self.error = e
                        self._current = None
                        self.state = PlaybackState.IDLE
                return

            with self._lock:
                if not self._is_current(request):
                    return
                if on_ready is not None:
                    on_ready()
                request.ready_fired = True
                # on_ready may itself have stopped us
                if not self._is_current(request):
                    return
                try:
                    playback = self.player.play(audio)
                except Exception as e:
                    logger.error("Playback failed: %s", e)
                    request.error = e
                    self.error = e
                    self._current = None
                    self.state = PlaybackState.IDLE
                    return
                self._playback = playback
                self.state = PlaybackState.PLAYING

            playback.wait()

            with self._lock:
                if self._current is request:
                    self._current = None
                    self._playback = None
                    self.state = PlaybackState.IDLE
        finally:
            request._done.set()
