"""Turn-by-turn labelling of a practice transcript."""

from collections.abc import Iterable

from ba_training.analysis import text as text_utils
from ba_training.analysis.catalog import StageDefinition
from ba_training.analysis.schemas import Speaker, Turn, TurnLabel

# How many preceding turns a follow-up may refer back to
FOLLOW_UP_LOOKBACK = 2


def order_turns(turns: Iterable[Turn]) -> list[Turn]:
    """Turns sorted by index, the only ordering the transcript guarantees."""
    return sorted(turns, key=lambda turn: turn.index)


def match_areas(text: str, stage: StageDefinition) -> frozenset[str]:
    """Areas whose keywords appear in ``text`` (case-insensitive substring)."""
    lowered = (text or "").lower()
    return frozenset(
        area.area_id
        for area in stage.required_areas
        if any(keyword in lowered for keyword in area.keywords)
    )


def classify(turns: Iterable[Turn], stage: StageDefinition) -> list[TurnLabel]:
    """
    Label every turn of a transcript.

    Returns one label per turn in index order. Only user turns get non-empty
    labels; counterpart and system turns are kept so positions line up for
    follow-up lookback.
    """
    ordered = order_turns(turns)
    labels: list[TurnLabel] = []

    for position, turn in enumerate(ordered):
        if turn.speaker is not Speaker.USER:
            labels.append(TurnLabel(turn_index=turn.index, speaker=turn.speaker))
            continue

        question = text_utils.is_question(turn.text)
        recent_counterpart = [
            prior.text
            for prior in ordered[max(0, position - FOLLOW_UP_LOOKBACK):position]
            if prior.speaker is Speaker.COUNTERPART
        ]

        labels.append(
            TurnLabel(
                turn_index=turn.index,
                speaker=turn.speaker,
                is_question=question,
                is_open_question=question and not text_utils.is_closed_question(turn.text),
                is_follow_up=question and text_utils.looks_like_follow_up(turn.text, recent_counterpart),
                mentions_solution_language=text_utils.mentions_solution_language(turn.text),
                has_greeting=text_utils.has_greeting(turn.text),
                matched_areas=match_areas(turn.text, stage),
            )
        )

    return labels


def user_turn_count(turns: Iterable[Turn]) -> int:
    return sum(1 for turn in turns if turn.speaker is Speaker.USER and turn.text.strip())
