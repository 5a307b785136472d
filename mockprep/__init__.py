"""
MockPrep: mock interview practice with an AI interviewer.

Runs stage-specific mock interviews against a tracked job role, by text,
push-to-talk voice, or a continuous realtime voice channel, and scores each
finished session.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.engine import InterviewEngine
from .interview.models import InterviewContext, Message, AnalysisResult

__all__ = ["InterviewEngine", "InterviewContext", "Message", "AnalysisResult"]
