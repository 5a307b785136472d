"""
Conversation drivers: one interface over the two interview modalities.

Both drivers produce the same artifact, an ordered tuple of Messages, so the
recorder and evaluator never need to know which modality ran.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from ..errors import InvalidState
from .engine import InterviewEngine, to_iso
from .models import InterviewContext, Message, Speaker
from .realtime import RealtimeVoiceChannel
from .speech import CaptureState, SpeechCapturePipeline, SpeechPlaybackPipeline

logger = logging.getLogger("conversation_driver")


class ConversationDriver(ABC):
    """Start, run and end one interview; expose its transcript."""

    modality: str = ""

    @abstractmethod
    async def start(self, context: InterviewContext) -> None:
        ...

    @abstractmethod
    async def end(self) -> Tuple[Message, ...]:
        ...

    @property
    @abstractmethod
    def messages(self) -> Tuple[Message, ...]:
        ...

    @property
    @abstractmethod
    def session_id(self) -> str:
        ...

    @property
    @abstractmethod
    def started_at(self) -> Optional[str]:
        ...

    @property
    @abstractmethod
    def ended_at(self) -> Optional[str]:
        ...


class TurnBasedDriver(ConversationDriver):
    """
    Discrete turns through the InterviewEngine, typed or push-to-talk.

    ``visible`` is what the candidate has been shown so far: candidate lines
    appear as soon as they are sent, interviewer lines only once their audio
    is about to play (or as text alone when there is no voice or it failed).
    """

    modality = "text"

    def __init__(self,
                 engine: InterviewEngine,
                 capture: Optional[SpeechCapturePipeline] = None,
                 playback: Optional[SpeechPlaybackPipeline] = None,
                 on_message: Optional[Callable[[Message], None]] = None):
        self.engine = engine
        self.capture = capture
        self.playback = playback
        self.on_message = on_message
        self.visible: List[Message] = []

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.engine.messages

    @property
    def session_id(self) -> str:
        return self.engine.session_id

    @property
    def started_at(self) -> Optional[str]:
        return to_iso(self.engine.started_at)

    @property
    def ended_at(self) -> Optional[str]:
        return to_iso(self.engine.ended_at)

    def _show(self, message: Message) -> None:
        self.visible.append(message)
        if self.on_message:
            self.on_message(message)

    async def _present(self, message: Message) -> None:
        if self.playback is None:
            self._show(message)
            return

        request = self.playback.speak(message.text, on_ready=lambda: self._show(message))
        await asyncio.to_thread(request.wait)
        if not request.ready_fired:
            if request.error is not None:
                logger.warning("Voice failed, showing text only: %s", request.error)
            self._show(message)

    async def start(self, context: InterviewContext) -> None:
        opening = await asyncio.to_thread(self.engine.start_interview, context)
        await self._present(opening)

    async def send(self, text: str) -> Message:
        """
        Send one typed or transcribed answer; returns the interviewer's reply.

        A blank answer or an inactive interview raises before anything is shown.
        """
        self._show(Message(role=Speaker.CANDIDATE, text=self.engine.check_turn(text)))
        reply = await asyncio.to_thread(self.engine.send_turn, text)
        await self._present(reply)
        return reply

    def start_recording(self) -> bool:
        if self.capture is None:
            raise RuntimeError("this driver has no microphone pipeline")
        if self.playback is not None:
            self.playback.stop()
        return self.capture.start_listening()

    async def send_recording(self) -> Optional[Message]:
        """
        Stop recording and send what was said. Returns None when nothing was
        recognised; a transcription failure is left on ``capture.error``.
        """
        text = await asyncio.to_thread(self.capture.stop_listening)
        if not text:
            return None
        self.capture.clear_transcript()
        return await self.send(text)

    async def end(self) -> Tuple[Message, ...]:
        if self.playback is not None:
            self.playback.stop()
        if self.capture is not None and self.capture.state is CaptureState.RECORDING:
            await asyncio.to_thread(self.capture.stop_listening, False)
        return self.engine.end_interview()


class RealtimeDriver(ConversationDriver):
    """Continuous voice through the RealtimeVoiceChannel."""

    modality = "realtime"

    def __init__(self, channel: RealtimeVoiceChannel):
        self.channel = channel

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.channel.transcript.messages

    @property
    def session_id(self) -> str:
        return self.channel.session_id

    @property
    def started_at(self) -> Optional[str]:
        return to_iso(self.channel.started_at)

    @property
    def ended_at(self) -> Optional[str]:
        return to_iso(self.channel.ended_at)

    async def start(self, context: InterviewContext) -> None:
        if not await self.channel.connect(context):
            raise self.channel.error or InvalidState("realtime connection was aborted")

    async def end(self) -> Tuple[Message, ...]:
        await self.channel.disconnect()
        return self.channel.transcript.messages
