import threading
import time

import numpy as np
import pytest
from google.auth.exceptions import DefaultCredentialsError

from mockprep.errors import DeviceIssue, DeviceUnavailable, MicrophoneError, PermissionDenied, ServiceUnavailable
from mockprep.infrastructure.audio.processing import classify_os_error, frequency_buckets
from mockprep.infrastructure.audio.speech import GoogleSynthesizer, GoogleTranscriber
from mockprep.interview.speech import (
    CaptureState, PlaybackState, SpeechCapturePipeline, SpeechPlaybackPipeline,
)
from mockprep.interview.testing import (
    MockAudioPlayer, MockMicrophone, MockSynthesizer, MockTranscriber,
)


def tone_chunk(n=1600, freq=440.0, sr=16000):
    t = np.arange(n) / sr
    return (0.3 * np.sin(2 * np.pi * freq * t) * 32767).astype("<i2").tobytes()


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# ---- capture ---------------------------------------------------------------

def test_capture_records_and_transcribes():
    mic = MockMicrophone(sample_rate=16000)
    transcriber = MockTranscriber("I shipped the new onboarding flow.")
    states = []
    pipeline = SpeechCapturePipeline(mic, transcriber, on_state_change=states.append)

    assert pipeline.start_listening() is True
    mic.feed(tone_chunk())
    mic.feed(tone_chunk())
    text = pipeline.stop_listening()

    assert text == "I shipped the new onboarding flow."
    assert pipeline.transcript == text
    assert pipeline.state is CaptureState.IDLE
    assert states == [CaptureState.RECORDING, CaptureState.TRANSCRIBING, CaptureState.IDLE]
    assert mic.handles[0].closed

    pcm, sr = transcriber.calls[0]
    assert sr == 16000
    assert len(pcm) == 2 * 3200


def test_capture_resamples_48k_input():
    mic = MockMicrophone(sample_rate=48000)
    transcriber = MockTranscriber()
    pipeline = SpeechCapturePipeline(mic, transcriber)

    pipeline.start_listening()
    mic.feed(tone_chunk(n=4800, sr=48000))
    pipeline.stop_listening()

    pcm, sr = transcriber.calls[0]
    assert sr == 16000
    assert len(pcm) == 2 * 1600


def test_no_chunks_means_no_transcription_call():
    mic = MockMicrophone()
    transcriber = MockTranscriber()
    pipeline = SpeechCapturePipeline(mic, transcriber)

    pipeline.start_listening()
    assert pipeline.stop_listening() is None
    assert transcriber.calls == []
    assert pipeline.state is CaptureState.IDLE
    assert mic.handles[0].closed


def test_stop_without_transcribing_discards_audio():
    mic = MockMicrophone()
    transcriber = MockTranscriber()
    pipeline = SpeechCapturePipeline(mic, transcriber)

    pipeline.start_listening()
    mic.feed(tone_chunk())
    assert pipeline.stop_listening(transcribe=False) is None
    assert transcriber.calls == []


def test_stop_outside_recording_is_noop():
    pipeline = SpeechCapturePipeline(MockMicrophone(), MockTranscriber())
    assert pipeline.stop_listening() is None
    assert pipeline.state is CaptureState.IDLE


def test_second_start_is_ignored_while_recording():
    mic = MockMicrophone()
    pipeline = SpeechCapturePipeline(mic, MockTranscriber())
    assert pipeline.start_listening()
    assert pipeline.start_listening() is False
    assert len(mic.handles) == 1
    pipeline.stop_listening(transcribe=False)


@pytest.mark.parametrize("error, expected", [
    (PermissionDenied("denied"), PermissionDenied),
    (DeviceUnavailable(DeviceIssue.NO_DEVICE), DeviceUnavailable),
])
def test_microphone_errors_are_reported_not_raised(error, expected):
    pipeline = SpeechCapturePipeline(MockMicrophone(error=error), MockTranscriber())

    assert pipeline.start_listening() is False
    assert isinstance(pipeline.error, expected)
    assert pipeline.state is CaptureState.IDLE


def test_raw_os_errors_are_classified():
    pipeline = SpeechCapturePipeline(MockMicrophone(error=OSError(-9985, "Device unavailable")),
                                     MockTranscriber())
    assert pipeline.start_listening() is False
    assert isinstance(pipeline.error, DeviceUnavailable)
    assert pipeline.error.kind is DeviceIssue.DEVICE_BUSY


def test_classify_os_error_kinds():
    assert isinstance(classify_os_error(PermissionError(13, "denied")), PermissionDenied)
    assert classify_os_error(OSError(-9996, "Invalid device")).kind is DeviceIssue.NO_DEVICE
    busy = classify_os_error(OSError(-9985, "busy"))
    assert busy.kind is DeviceIssue.DEVICE_BUSY
    assert "already in use" in busy.user_message


def test_transcription_failure_sets_error():
    mic = MockMicrophone()
    pipeline = SpeechCapturePipeline(mic, MockTranscriber(error=ServiceUnavailable("stt down")))

    pipeline.start_listening()
    mic.feed(tone_chunk())
    assert pipeline.stop_listening() is None
    assert isinstance(pipeline.error, ServiceUnavailable)
    assert pipeline.state is CaptureState.IDLE


def test_unexpected_transcriber_exception_is_reported_as_service_unavailable():
    mic = MockMicrophone()
    pipeline = SpeechCapturePipeline(mic, MockTranscriber(error=RuntimeError("credentials expired")))

    pipeline.start_listening()
    mic.feed(tone_chunk())

    assert pipeline.stop_listening() is None
    assert isinstance(pipeline.error, ServiceUnavailable)
    assert pipeline.error.user_message == "Transcription failed. Please try again."
    assert pipeline.state is CaptureState.IDLE
    assert pipeline.transcript is None


def test_microphone_release_failure_returns_to_idle():
    mic = MockMicrophone(close_error=OSError(-9988, "Stream closed"))
    transcriber = MockTranscriber()
    states = []
    pipeline = SpeechCapturePipeline(mic, transcriber, on_state_change=states.append)

    pipeline.start_listening()
    mic.feed(tone_chunk())

    assert pipeline.stop_listening() is None
    assert isinstance(pipeline.error, MicrophoneError)
    assert pipeline.state is CaptureState.IDLE
    assert states[-1] is CaptureState.IDLE
    assert transcriber.calls == []

    # Nothing left to release
    assert pipeline.stop_listening() is None

    mic.close_error = None
    assert pipeline.start_listening() is True
    assert pipeline.error is None
    pipeline.stop_listening(transcribe=False)
    assert mic.handles[-1].closed


class _FailingSpeechClient:
    def __init__(self, error):
        self.error = error

    def recognize(self, **kwargs):
        raise self.error

    def synthesize_speech(self, **kwargs):
        raise self.error


def test_google_transcriber_wraps_credential_errors():
    transcriber = GoogleTranscriber(client=_FailingSpeechClient(DefaultCredentialsError("no credentials")))

    with pytest.raises(ServiceUnavailable) as info:
        transcriber.transcribe(b"\x00\x00" * 160, 16000)
    assert info.value.user_message == "Transcription failed. Please try again."


def test_google_synthesizer_wraps_credential_errors():
    synthesizer = GoogleSynthesizer(client=_FailingSpeechClient(DefaultCredentialsError("no credentials")))

    with pytest.raises(ServiceUnavailable):
        synthesizer.synthesize("Tell me about yourself.")


def test_frequency_buckets_shape_and_range():
    samples = np.sin(2 * np.pi * 1000 * np.arange(256) / 16000).astype(np.float32)
    levels = frequency_buckets(samples)
    assert levels.shape == (32,)
    assert levels.min() >= 0.0 and levels.max() <= 1.0
    assert levels.max() > 0.0

    assert not frequency_buckets(np.zeros(0, dtype=np.float32)).any()


# ---- playback --------------------------------------------------------------

def test_speak_fires_on_ready_then_plays():
    player = MockAudioPlayer()
    pipeline = SpeechPlaybackPipeline(MockSynthesizer(), player)
    ready = []

    request = pipeline.speak("Tell me about yourself.", on_ready=lambda: ready.append(len(player.playbacks)))

    assert request.wait(2.0)
    assert ready == [0]
    assert request.ready_fired
    assert len(player.playbacks) == 1
    assert pipeline.state is PlaybackState.IDLE


def test_second_speak_supersedes_first():
    gate = threading.Event()
    player = MockAudioPlayer()
    pipeline = SpeechPlaybackPipeline(MockSynthesizer(gate=gate), player)
    ready = []

    first = pipeline.speak("first", on_ready=lambda: ready.append("first"))
    second = pipeline.speak("second", on_ready=lambda: ready.append("second"))
    gate.set()

    assert second.wait(2.0)
    assert first.wait(2.0)
    assert ready == ["second"]
    assert first.cancelled
    assert not first.ready_fired
    assert [p.audio for p in player.playbacks] == [b"RIFFsecond"]


def test_synthesis_failure_never_fires_on_ready():
    pipeline = SpeechPlaybackPipeline(MockSynthesizer(error=ServiceUnavailable("tts down")), MockAudioPlayer())
    ready = []

    request = pipeline.speak("Hello", on_ready=lambda: ready.append(True))

    assert request.wait(2.0)
    assert ready == []
    assert isinstance(request.error, ServiceUnavailable)
    assert isinstance(pipeline.error, ServiceUnavailable)
    assert pipeline.state is PlaybackState.IDLE


def test_stop_interrupts_playback():
    player = MockAudioPlayer(finish_immediately=False)
    pipeline = SpeechPlaybackPipeline(MockSynthesizer(), player)

    request = pipeline.speak("A long question")
    assert wait_for(lambda: pipeline.state is PlaybackState.PLAYING)

    pipeline.stop()

    assert request.wait(2.0)
    assert player.playbacks[0].stopped
    assert pipeline.state is PlaybackState.IDLE
