"""
Interview prompt templates and generation.

This module contains all the prompt templates used throughout the interview system,
keeping them separate from the business logic for easier maintenance and editing.
"""
import json
from typing import List, Optional, Sequence

from ..config import EXTRACTION_INPUT_CHARS
from .budget import BudgetDirective
from .models import InterviewContext, Message

KICKOFF_MESSAGE = "Please start the interview by introducing yourself and asking for my intro pitch."

OPENING_DIRECTIVE = (
    "This is the start of the interview: introduce yourself briefly and ask the candidate "
    "to give their short intro pitch (elevator pitch)."
)

STAGE_PERSONAS = {
    "screening": "You are an efficient recruiter. Focus on high-level fit, core requirements, and logistics. "
                 "Be friendly but move quickly.",
    "hiring-manager": "You are a deeply technical leader or department head. Dive deep into projects, "
                      "architecture, and \"how\" things were built. Be rigorous and probe for depth of knowledge.",
    "cultural-fit": "You are a potential peer or team lead. Focus on values, collaboration, and how the "
                    "candidate handles interpersonal situations. Be warm and observant.",
}

DEFAULT_STAGE_NAME = "screening"

BEHAVIOUR_GUIDELINES = """
## Strict Behavioral Guidelines:
1. **Objectivity & Neutrality**: Avoid positive bias. Do not over-praise the candidate. Stay neutral, objective, and professional. Your role is to assess fit, not to be a cheerleader.
2. **Follow-up Questions**: Do not simply move through a list of prepared questions. Listen actively and ask probing follow-ups based on the candidate's specific answers.
3. **No Session Feedback**: Do not provide any feedback, critique, or "good job" comments during the interview. Keep reactions professional and non-committal (e.g., "I see," "Thank you for that detail").
4. **One Question at a Time**: Ask only ONE question per response and wait for the answer.
5. **Tone & Persona**: Adapt your tone to the recruiter profile AND the current interview stage.
6. **Challenge & Adapt**: Ask challenging questions based on the job description and gaps in the candidate's background. If the extra context or past feedback lists weak points, test the candidate on them.
""".strip()


def stage_key(stage_name: Optional[str]) -> str:
    """'Hiring Manager' -> 'hiring-manager'."""
    return (stage_name or DEFAULT_STAGE_NAME).strip().lower().replace(" ", "-").replace("_", "-")


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def persona(context: InterviewContext) -> str:
        """Persona for the stage; custom stages fall back to their own description."""
        key = stage_key(context.stage_name)
        if key in STAGE_PERSONAS:
            return STAGE_PERSONAS[key]
        return (f"You are conducting the \"{context.stage_name}\" stage. "
                f"Stage focus: {context.stage_description or 'General interview'}.")

    @staticmethod
    def context_details(context: InterviewContext) -> str:
        role = context.role_title or "Not provided"
        if context.role_title and context.company_name:
            role = f"{context.role_title} at {context.company_name}"

        lines = [
            f"[Interview Stage]: {context.stage_name or DEFAULT_STAGE_NAME}",
            f"[Stage Focus]: {context.stage_description or 'General interview'}",
            f"[Candidate]: {context.candidate_name or 'Not provided'}",
        ]
        if context.candidate_background:
            lines.append(f"[Candidate Background]: {context.candidate_background}")
        if context.candidate_strengths:
            lines.append(f"[Candidate Strengths]: {', '.join(context.candidate_strengths)}")
        if context.candidate_preferences:
            lines.append(f"[Candidate Preferences]: {context.candidate_preferences}")
        lines += [
            f"[CV]: {context.cv_text or 'Not provided'}",
            f"[Role]: {role}",
            f"[Job Description]: {context.jd_text or 'Not provided'}",
            f"[Recruiter Context]: {context.recruiter_text or 'Professional recruiter'}",
            f"[Extra Context / Feedback]: {context.extra_context or 'None provided'}",
        ]
        if context.past_feedback:
            lines.append(f"[Feedback From Previous Sessions]:\n{context.past_feedback}")
        return "\n".join(lines)

    @staticmethod
    def system_instruction(context: InterviewContext,
                           directives: Sequence[BudgetDirective] = (),
                           opening: bool = False) -> str:
        """System instruction sent with every text turn."""
        sections = [
            "You are a professional, high-stakes interviewer. Your goal is to conduct a realistic, "
            "rigorous mock interview.",
            """## Communication Style:
1. **Natural Conversationalist**: Write naturally and conversationally. Use varied sentence structures.
2. **Human-like Flow**: Use transitions like "I see" or "Interesting" sparingly.
3. **Concise Responses**: Keep responses sized for a spoken exchange. Don't write essays.""",
            BEHAVIOUR_GUIDELINES,
            f"## Your Persona For This Stage:\n{InterviewPrompts.persona(context)}",
            f"## Context Details:\n{InterviewPrompts.context_details(context)}",
        ]
        if directives:
            sections.append("## ACTIVE CONSTRAINTS:\n" + "\n".join(f"- {d.text}" for d in directives))
        if opening:
            sections.append(f"## Opening:\n{OPENING_DIRECTIVE}")
        return "\n\n".join(sections)

    @staticmethod
    def realtime_instructions(context: InterviewContext) -> str:
        """Instructions for the realtime voice session, which has no per-turn budget injection."""
        return f"""
You are a professional, high-stakes interviewer conducting a realistic, rigorous mock interview by voice.

## Speech Delivery Guidelines:
1. **Natural Conversationalist**: Speak naturally. Avoid a monotonous, robotic tone.
2. **Pacing**: Adapt your pacing to the candidate.

{BEHAVIOUR_GUIDELINES}

## Your Persona For This Stage:
{InterviewPrompts.persona(context)}

## Context Details:
{InterviewPrompts.context_details(context)}

Initiate the interview now by introducing yourself and asking for the candidate's intro pitch.
        """.strip()

    @staticmethod
    def evaluation_prompt(transcript: Sequence[Message], context: InterviewContext) -> str:
        """Prompt for scoring a finished interview."""
        lines: List[str] = [f"{m.role.value}: {m.text}" for m in transcript]
        return f"""
You are an expert interview coach. Analyze the following interview transcript based on the provided job context.

Context: {json.dumps(context.to_dict(), ensure_ascii=False)}

Transcript:
{chr(10).join(lines)}

Return a JSON object with:
{{"score": <integer 0-100>, "summary": "<string>", "strengths": ["<string>", ...], "weaknesses": ["<string>", ...], "improvements": ["<string>", ...]}}
        """.strip()

    @staticmethod
    def cv_extraction_prompt(cv_text: str) -> str:
        """Prompt for reading a candidate profile out of a CV."""
        return f"""
You are an expert CV analyzer. Extract key information from the provided CV/Resume to create a candidate profile.

Return a JSON object with:
{{"name": "<full name of the candidate>", "background": "<concise 2-3 sentence professional summary of their experience, seniority level and primary domain expertise, in third person>", "strengths": ["<5-7 key skills, achievements or areas of expertise from the CV>", ...]}}

Focus on professional experience and seniority, key achievements and impact, technical skills and domain expertise, and leadership and collaboration abilities.
Strengths should be specific and actionable, not generic.

CV Content:
{cv_text[:EXTRACTION_INPUT_CHARS]}
        """.strip()

    @staticmethod
    def jd_extraction_prompt(jd_text: str) -> str:
        """Prompt for reading role details out of a job description."""
        return f"""
You are an expert at analyzing job descriptions. Extract key information to create a role summary.

Return a JSON object with:
{{"role_name": "<short name combining company and role, e.g. 'Wise - Senior Designer'>", "company_name": "<the company name only>", "role_title": "<the exact job title, e.g. 'Senior Product Designer'>"}}

If any field cannot be determined, use an empty string.

Job Description:
{jd_text[:EXTRACTION_INPUT_CHARS]}
        """.strip()
