"""
Error taxonomy for the interview system.

Every error carries a ``user_message`` suitable for showing to the candidate;
``str(err)`` keeps the technical detail for the log file.
"""
from enum import Enum
from typing import Optional


class InterviewError(Exception):
    """Base class for all interview errors."""

    default_message = "Something went wrong."

    def __init__(self, detail: str = "", user_message: Optional[str] = None):
        super().__init__(detail or self.default_message)
        self.user_message = user_message or self.default_message


class ServiceUnavailable(InterviewError):
    """An external service was unreachable or returned a non-success status."""
    default_message = "The interview service is unavailable. Please try again."


class InvalidState(InterviewError):
    """An operation was invoked outside its valid state."""
    default_message = "That action isn't possible right now."


class MalformedResponse(InterviewError):
    """An external service answered without a required field."""
    default_message = "The service returned an unexpected response."


class ParseFailure(InterviewError):
    """A document could not be converted to text."""
    default_message = "Could not read that document."


class MicrophoneError(InterviewError):
    """Base class for microphone acquisition failures."""
    default_message = "Could not access the microphone."


class PermissionDenied(MicrophoneError):
    default_message = "Microphone access denied. Please allow microphone permissions."


class DeviceIssue(str, Enum):
    NO_DEVICE = "no_device"
    DEVICE_BUSY = "device_busy"


class DeviceUnavailable(MicrophoneError):
    """No microphone, or the microphone is held by another process."""

    _messages = {
        DeviceIssue.NO_DEVICE: "No microphone found. Please connect a microphone.",
        DeviceIssue.DEVICE_BUSY: "Microphone is already in use by another application.",
    }

    def __init__(self, kind: DeviceIssue, detail: str = ""):
        super().__init__(detail or kind.value, user_message=self._messages[kind])
        self.kind = kind
