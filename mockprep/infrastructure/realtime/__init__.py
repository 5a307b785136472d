"""Realtime voice session negotiation and WebRTC media."""

from .client import RealtimeSessionClient, RealtimeCredential

__all__ = ["RealtimeSessionClient", "RealtimeCredential"]
