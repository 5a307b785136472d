"""Persistence for profiles, roles and interview sessions."""

from .store import JsonFileStore, InterviewStore, generate_id, next_stage

__all__ = ["JsonFileStore", "InterviewStore", "generate_id", "next_stage"]
