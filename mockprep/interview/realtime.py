"""
Realtime voice channel: a continuous full-duplex interview over WebRTC.

The channel owns two exclusive resources for its lifetime, the microphone and
the peer connection, and always releases them together. Finalised speech
transcripts from either side arrive on the ``oai-events`` data channel and are
appended to the channel's transcript, the only transcript this modality has.
"""
import inspect
import json
import time
import uuid
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from aiortc import RTCPeerConnection, RTCSessionDescription

from ..config import REALTIME_EVENTS_CHANNEL
from ..errors import (
    DeviceUnavailable, InterviewError, InvalidState, MalformedResponse,
    PermissionDenied, ServiceUnavailable,
)
from .events import InterviewEventBus, InterviewEndedEvent, RealtimeStatusChangedEvent, ErrorOccurredEvent
from .models import InterviewContext, Speaker, Transcript
from .prompts import InterviewPrompts

logger = logging.getLogger("realtime_channel")


class ChannelStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


def error_kind(error: Optional[Exception]) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, DeviceUnavailable):
        return error.kind.value
    if isinstance(error, PermissionDenied):
        return "permission_denied"
    if isinstance(error, MalformedResponse):
        return "malformed_response"
    if isinstance(error, ServiceUnavailable):
        return "service_unavailable"
    return "peer_connection"


class RealtimeVoiceChannel:
    """
    ``DISCONNECTED -> CONNECTING -> CONNECTED -> (DISCONNECTED | ERROR)``.

    There is no automatic reconnect; a new ``connect`` starts from scratch
    with a fresh transcript.
    """

    def __init__(self,
                 session_client,
                 media,
                 peer_factory: Callable[[], Any] = RTCPeerConnection,
                 event_bus: Optional[InterviewEventBus] = None,
                 clock: Callable[[], float] = time.time):
        self.session_client = session_client
        self.media = media
        self.peer_factory = peer_factory
        self.event_bus = event_bus or InterviewEventBus()
        self.clock = clock

        self.status = ChannelStatus.DISCONNECTED
        self.error: Optional[InterviewError] = None
        self.transcript = Transcript()
        self.session_id = uuid.uuid4().hex
        self.interviewer_speaking = False
        self.candidate_speaking = False
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None

        self._pc = None
        self._mic = None
        self._sink = None
        self._dc = None

    @property
    def error_kind(self) -> Optional[str]:
        return error_kind(self.error)

    def _set_status(self, status: ChannelStatus) -> None:
        self.status = status
        logger.info("Realtime status -> %s", status.value)
        self.event_bus.emit(RealtimeStatusChangedEvent(
            self.session_id, self.clock(), status.value, self.error_kind,
        ))

    async def connect(self, context: InterviewContext) -> bool:
        """
        Negotiate a session and start streaming.

        Returns False on failure, with the classified error on ``self.error``
        and status ERROR; both resources are released by then.
        """
        if self.status not in (ChannelStatus.DISCONNECTED, ChannelStatus.ERROR):
            raise InvalidState(f"cannot connect while {self.status.value}")

        self.error = None
        self.transcript = Transcript()
        self.session_id = uuid.uuid4().hex
        self.interviewer_speaking = self.candidate_speaking = False
        self.started_at = self.clock()
        self.ended_at = None
        self._set_status(ChannelStatus.CONNECTING)

        try:
            await self._negotiate(context)
        except InterviewError as e:
            await self._fail(e)
            return False
        except Exception as e:
            # aiortc/aioice raise their own exception types for ICE/DTLS failures
            await self._fail(ServiceUnavailable(f"Peer connection failed: {e}",
                                                user_message="Connection failed. Please try again."))
            return False

        if self.status is not ChannelStatus.CONNECTING:
            # disconnect() ran while we were negotiating
            await self._release()
            return False
        self._set_status(ChannelStatus.CONNECTED)
        return True

    async def _negotiate(self, context: InterviewContext) -> None:
        credential = await self.session_client.create_credential(
            InterviewPrompts.realtime_instructions(context)
        )

        pc = self.peer_factory()
        self._pc = pc
        sink = self.media.create_sink()
        self._sink = sink

        @pc.on("track")
        def on_track(track):
            if track.kind == "audio" and self._sink is sink:
                sink.addTrack(track)

        @pc.on("connectionstatechange")
        async def on_connection_state_change():
            if pc.connectionState == "failed" and self.status is ChannelStatus.CONNECTED:
                await self._fail(ServiceUnavailable("Peer connection failed",
                                                    user_message="Connection lost. Please reconnect."))

        dc = pc.createDataChannel(REALTIME_EVENTS_CHANNEL)
        self._dc = dc

        @dc.on("message")
        def on_message(message):
            self.handle_event(message)

        self._mic = self.media.open_microphone()
        pc.addTrack(self._mic.audio)

        offer = await pc.createOffer()
        await pc.setLocalDescription(offer)
        answer_sdp = await self.session_client.exchange_sdp(pc.localDescription.sdp, credential.value)
        await pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer"))
        await sink.start()

    def handle_event(self, raw: Union[str, bytes, Dict[str, Any]]) -> None:
        """Apply one data-channel event. Ignored unless connecting or connected."""
        if self.status not in (ChannelStatus.CONNECTING, ChannelStatus.CONNECTED):
            return

        if isinstance(raw, dict):
            event = raw
        else:
            try:
                event = json.loads(raw)
            except ValueError:
                logger.warning("Dropping non-JSON realtime event: %r", raw[:200])
                return
            if not isinstance(event, dict):
                logger.warning("Dropping realtime event that is not an object: %r", raw[:200])
                return

        kind = event.get("type")
        if kind == "response.audio.delta":
            self.interviewer_speaking = True
        elif kind == "response.done":
            self.interviewer_speaking = False
        elif kind == "input_audio_buffer.speech_started":
            self.candidate_speaking = True
        elif kind == "input_audio_buffer.speech_stopped":
            self.candidate_speaking = False
        elif kind == "response.audio_transcript.done":
            self._append(Speaker.INTERVIEWER, event.get("transcript"))
        elif kind == "conversation.item.input_audio_transcription.completed":
            self._append(Speaker.CANDIDATE, event.get("transcript"))
        elif kind == "error":
            logger.warning("Realtime service error event: %s", event.get("error"))

    def _append(self, role: Speaker, text: Optional[str]) -> None:
        text = (text or "").strip()
        if text:
            self.transcript.append(role, text)

    async def _release(self) -> None:
        """
        Drop microphone, sink, data channel and peer connection together.

        A failure releasing one is logged and the rest are still released.
        """
        mic, sink, dc, pc = self._mic, self._sink, self._dc, self._pc
        self._mic = self._sink = self._dc = self._pc = None
        self.interviewer_speaking = self.candidate_speaking = False
        steps = (
            ("microphone", mic and mic.stop),
            ("audio sink", sink and sink.stop),
            ("data channel", dc and dc.close),
            ("peer connection", pc and pc.close),
        )
        for name, close in steps:
            if close is None:
                continue
            try:
                result = close()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Failed to release %s: %s", name, e)

    async def _fail(self, error: InterviewError) -> None:
        if self.status is ChannelStatus.DISCONNECTED:
            # Torn down mid-negotiation; only stragglers to release
            await self._release()
            return
        logger.error("Realtime channel failed: %s", error)
        self.error = error
        await self._release()
        self.ended_at = self.clock()
        self.transcript.freeze()
        self.event_bus.emit(ErrorOccurredEvent(
            self.session_id, self.clock(), type(error).__name__, str(error), "realtime_channel",
        ))
        self._set_status(ChannelStatus.ERROR)

    async def disconnect(self) -> None:
        """User hang-up. Safe to call in any state."""
        if self.status is ChannelStatus.DISCONNECTED:
            return
        was_live = self.status in (ChannelStatus.CONNECTING, ChannelStatus.CONNECTED)
        self._set_status(ChannelStatus.DISCONNECTED)
        self.error = None
        await self._release()
        if was_live:
            self.ended_at = self.clock()
            messages = self.transcript.freeze()
            self.event_bus.emit(InterviewEndedEvent(self.session_id, self.ended_at, len(messages), "realtime"))
