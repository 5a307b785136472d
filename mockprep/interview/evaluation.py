"""
Post-interview evaluation.
"""
import logging
from typing import Sequence

from ..errors import InvalidState
from .models import AnalysisResult, InterviewContext, Message, MessageStatus, Speaker
from .prompts import InterviewPrompts
from .schemas import parse_analysis

logger = logging.getLogger("evaluation")


class InterviewEvaluator:
    """Scores a finished transcript through the reasoning service's JSON mode."""

    def __init__(self, llm):
        self.llm = llm

    def evaluate(self, transcript: Sequence[Message], context: InterviewContext) -> AnalysisResult:
        # Failed candidate turns stay in the record but never reached the interviewer
        spoken = [m for m in transcript if m.status is not MessageStatus.FAILED]
        if not any(m.role is Speaker.CANDIDATE for m in spoken):
            raise InvalidState("nothing to evaluate: the candidate never answered",
                               user_message="Answer at least one question before requesting feedback.")

        prompt = InterviewPrompts.evaluation_prompt(spoken, context)
        data = self.llm.generate_json(prompt)
        result = parse_analysis(data)
        logger.info("Evaluation score %d/100", result.score)
        return result
