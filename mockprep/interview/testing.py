"""
Testing infrastructure with mock services for the interview system.

Every mock matches the duck-typed interface the real component expects, so an
engine, pipeline or channel can be exercised without network, audio hardware
or credentials.
"""
import json
import threading
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import ServiceUnavailable
from ..infrastructure.realtime.client import RealtimeCredential
from .models import Message


class FakeClock:
    """Manually advanced clock; call it like ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0.0, minutes: float = 0.0) -> None:
        self.now += seconds + minutes * 60.0


class MockLLMClient:
    """Mock reasoning service for testing."""

    def __init__(self,
                 replies: Optional[List[str]] = None,
                 json_response: Optional[Dict[str, Any]] = None,
                 fail_on_calls: Sequence[int] = ()):
        self.replies = list(replies or [])
        self.json_response = json_response
        self.fail_on_calls = set(fail_on_calls)
        self.current_reply_idx = 0
        self.request_history: List[tuple] = []
        self.json_prompts: List[str] = []
        self.on_call: Optional[Callable[[], None]] = None

    def generate_reply(self, system_instruction: str, messages: Sequence[Message]) -> str:
        """Return the next canned reply; raise on the configured call numbers."""
        call_number = len(self.request_history)
        self.request_history.append((system_instruction, tuple(messages)))
        if self.on_call:
            self.on_call()

        if call_number in self.fail_on_calls:
            raise ServiceUnavailable(f"mock failure on call {call_number}")

        if self.current_reply_idx < len(self.replies):
            reply = self.replies[self.current_reply_idx]
            self.current_reply_idx += 1
            return reply
        return f"Mock question {call_number + 1}?"

    def generate_json(self, prompt: str, max_output_tokens: int = 2048) -> Dict[str, Any]:
        self.json_prompts.append(prompt)
        if self.json_response is None:
            raise ServiceUnavailable("mock has no JSON response configured")
        return json.loads(json.dumps(self.json_response))


class MockTranscriber:
    """Returns a fixed transcript and records what it was given."""

    def __init__(self, transcript: str = "Hello, this is my answer.", error: Optional[Exception] = None):
        self.transcript = transcript
        self.error = error
        self.calls: List[tuple] = []

    def transcribe(self, pcm16: bytes, sr_hz: int) -> str:
        self.calls.append((pcm16, sr_hz))
        if self.error is not None:
            raise self.error
        return self.transcript


class MockSynthesizer:
    """
    Returns fake audio for any text.

    With ``gate`` set, ``synthesize`` blocks until the event is set so a test
    can supersede the request while it is still in flight.
    """

    def __init__(self, error: Optional[Exception] = None, gate: Optional[threading.Event] = None):
        self.error = error
        self.gate = gate
        self.texts: List[str] = []

    def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.error is not None:
            raise self.error
        return b"RIFF" + text.encode("utf-8")


class MockPlayback:
    def __init__(self, audio: bytes, finish_immediately: bool):
        self.audio = audio
        self.stopped = False
        self._finished = threading.Event()
        if finish_immediately:
            self._finished.set()

    def stop(self) -> None:
        self.stopped = True
        self._finished.set()

    def finish(self) -> None:
        self._finished.set()

    def wait(self) -> None:
        self._finished.wait(5.0)


class MockAudioPlayer:
    """Records every playback; by default each one finishes at once."""

    def __init__(self, finish_immediately: bool = True, error: Optional[Exception] = None):
        self.finish_immediately = finish_immediately
        self.error = error
        self.playbacks: List[MockPlayback] = []

    def play(self, audio: bytes) -> MockPlayback:
        if self.error is not None:
            raise self.error
        playback = MockPlayback(audio, self.finish_immediately)
        self.playbacks.append(playback)
        return playback


class MockStreamHandle:
    def __init__(self, sample_rate: int, close_error: Optional[Exception] = None):
        self.sample_rate = sample_rate
        self.close_error = close_error
        self.closed = False

    def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True


class MockMicrophone:
    """
    Microphone double. ``open`` either raises ``error`` or hands back a handle
    and keeps the chunk callback so the test can ``feed`` audio. Handles raise
    ``close_error`` from ``close``.
    """

    def __init__(self, sample_rate: int = 16000, error: Optional[Exception] = None,
                 close_error: Optional[Exception] = None):
        self.sample_rate = sample_rate
        self.error = error
        self.close_error = close_error
        self.on_chunk: Optional[Callable[[bytes], None]] = None
        self.handles: List[MockStreamHandle] = []

    def open(self, on_chunk: Callable[[bytes], None]) -> MockStreamHandle:
        if self.error is not None:
            raise self.error
        self.on_chunk = on_chunk
        handle = MockStreamHandle(self.sample_rate, self.close_error)
        self.handles.append(handle)
        return handle

    def feed(self, data: bytes) -> None:
        self.on_chunk(data)


class _EventEmitter:
    """The ``on(event)`` decorator shape pyee gives aiortc objects."""

    def __init__(self):
        self.handlers: Dict[str, List[Callable]] = {}

    def on(self, event: str, f: Optional[Callable] = None):
        def register(handler):
            self.handlers.setdefault(event, []).append(handler)
            return handler
        if f is not None:
            return register(f)
        return register


class FakeDataChannel(_EventEmitter):
    def __init__(self, label: str):
        super().__init__()
        self.label = label
        self.closed = False

    def deliver(self, message) -> None:
        for handler in self.handlers.get("message", []):
            handler(message)

    def close(self) -> None:
        self.closed = True


class FakePeerConnection(_EventEmitter):
    """
    Stand-in for ``RTCPeerConnection``. ``fail_at`` names the step that
    raises: ``create_offer``, ``set_remote`` or None.
    """

    def __init__(self, fail_at: Optional[str] = None, on_offer: Optional[Callable[[], Any]] = None):
        super().__init__()
        self.fail_at = fail_at
        self.on_offer = on_offer
        self.tracks: List[Any] = []
        self.data_channels: List[FakeDataChannel] = []
        self.localDescription = None
        self.remoteDescription = None
        self.connectionState = "new"
        self.closed = False

    def createDataChannel(self, label: str) -> FakeDataChannel:
        channel = FakeDataChannel(label)
        self.data_channels.append(channel)
        return channel

    def addTrack(self, track) -> None:
        self.tracks.append(track)

    async def createOffer(self):
        if self.on_offer is not None:
            result = self.on_offer()
            if hasattr(result, "__await__"):
                await result
        if self.fail_at == "create_offer":
            raise RuntimeError("ICE gathering failed")
        return SimpleNamespace(sdp="v=0\r\no=- offer\r\n", type="offer")

    async def setLocalDescription(self, description) -> None:
        self.localDescription = description

    async def setRemoteDescription(self, description) -> None:
        if self.fail_at == "set_remote":
            raise RuntimeError("DTLS handshake failed")
        self.remoteDescription = description
        self.connectionState = "connected"

    async def close(self) -> None:
        self.closed = True
        self.connectionState = "closed"


class FakeTrack:
    kind = "audio"

    def __init__(self):
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeMicrophoneSource:
    def __init__(self):
        self.audio = FakeTrack()
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True
        self.audio.stop()


class FakeSink:
    def __init__(self):
        self.tracks: List[Any] = []
        self.started = False
        self.stopped = False

    def addTrack(self, track) -> None:
        self.tracks.append(track)

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


class FakeRealtimeMedia:
    """Media factory double; ``mic_error`` is raised from ``open_microphone``."""

    def __init__(self, mic_error: Optional[Exception] = None):
        self.mic_error = mic_error
        self.microphones: List[FakeMicrophoneSource] = []
        self.sinks: List[FakeSink] = []

    def open_microphone(self) -> FakeMicrophoneSource:
        if self.mic_error is not None:
            raise self.mic_error
        mic = FakeMicrophoneSource()
        self.microphones.append(mic)
        return mic

    def create_sink(self) -> FakeSink:
        sink = FakeSink()
        self.sinks.append(sink)
        return sink


class MockRealtimeSessionClient:
    """Session client double returning a fixed secret and answer SDP."""

    def __init__(self, error: Optional[Exception] = None, answer: str = "v=0\r\no=- answer\r\n"):
        self.error = error
        self.answer = answer
        self.instructions: List[str] = []
        self.offers: List[tuple] = []

    async def create_credential(self, instructions: str) -> RealtimeCredential:
        self.instructions.append(instructions)
        if self.error is not None:
            raise self.error
        return RealtimeCredential(value="ek_test_secret", expires_at=None, session={"id": "sess_test"})

    async def exchange_sdp(self, offer_sdp: str, token: str) -> str:
        self.offers.append((offer_sdp, token))
        return self.answer
