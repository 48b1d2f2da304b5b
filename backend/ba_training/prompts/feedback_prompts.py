"""
Prompt templates for LLM-assisted session feedback.

The model only judges coverage and technique. Independence is always computed
from the hint log, so it is never asked for.
"""

from ba_training.analysis.catalog import StageDefinition
from ba_training.analysis.schemas import Speaker, Turn
from ba_training.utils.text import truncate_text

# Per-turn cap on transcript text sent to the model
MAX_TURN_CHARS = 1000

FEEDBACK_SYSTEM_PROMPT = (
    "You are an expert Business Analyst trainer. Analyze the conversation and "
    "provide detailed scoring in the exact JSON format requested. If you cannot "
    "analyze properly, return a valid JSON object with default values."
)

_SPEAKER_LABELS = {
    Speaker.USER: "BA",
    Speaker.COUNTERPART: "Stakeholder",
    Speaker.SYSTEM: "System",
}


def format_transcript(turns: list[Turn]) -> str:
    """Render turns as ``[index] Speaker: text`` lines in index order."""
    lines = []
    for turn in sorted(turns, key=lambda t: t.index):
        text = turn.text.strip()
        if not text:
            continue
        lines.append(f"[{turn.index}] {_SPEAKER_LABELS[turn.speaker]}: {truncate_text(text, MAX_TURN_CHARS)}")
    return "\n".join(lines)


def format_required_areas(stage: StageDefinition) -> str:
    return "\n".join(
        f"- {area.area_id} ({area.label}): keywords {', '.join(area.keywords)}"
        for area in stage.required_areas
    )


def get_feedback_prompt(stage: StageDefinition, turns: list[Turn]) -> str:
    """Generate the user prompt asking for a JSON feedback analysis."""
    area_ids = ", ".join(f'"{area_id}"' for area_id in stage.area_ids)
    return f"""You are evaluating a Business Analyst practice session.

STAGE: {stage.name}
OBJECTIVE: {stage.objective}

REQUIRED COVERAGE AREAS:
{format_required_areas(stage)}

CONVERSATION TRANSCRIPT:
{format_transcript(turns)}

Please analyze:
1. Coverage: for each required area, how well did the BA's own questions explore it? (0-100)
2. Technique: quality of questions, follow-ups and professional conduct (0-100)
3. What share of the BA's questions were open, what share built on what the stakeholder said, and how evenly the talking was shared (0-100)
4. Whether the BA proposed solutions before exploring the problem
5. Concrete open questions the BA should ask next time

Use only these area ids: {area_ids}
Every score and ratio is an integer from 0 to 100, never a fraction: 50 means half, 1 means one percent.

Respond in JSON format:
{{
  "coverageScores": {{"<area_id>": integer 0-100}},
  "techniqueScore": integer 0-100,
  "openRatio": integer 0-100,
  "followUpRatio": integer 0-100,
  "talkBalance": integer 0-100,
  "earlySolutioning": boolean,
  "coveredAreas": [string],
  "missedAreas": [string],
  "nextTimeScripts": [string]
}}"""
