"""Prompt templates for LLM-assisted analysis."""

from ba_training.prompts.feedback_prompts import (
    FEEDBACK_SYSTEM_PROMPT,
    format_transcript,
    get_feedback_prompt,
)

__all__ = [
    "FEEDBACK_SYSTEM_PROMPT",
    "format_transcript",
    "get_feedback_prompt",
]
