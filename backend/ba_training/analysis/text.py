"""Text heuristics for reading a trainee's questions."""

import re

# Leading words ignored when looking at how a sentence opens
FILLER_WORDS = frozenset({"so", "and", "okay", "ok", "well", "right", "also", "but", "now"})

# Sentence openers that make a turn a question even without a "?"
_INTERROGATIVE_OPENER = re.compile(
    r"^(what|how|why|when|where|who|which|can you|could you|would you|tell me|"
    r"walk me through|describe|explain)\b"
)

# Yes/no auxiliaries. Checked before the interrogative openers, so
# "can you ..." is always closed.
_CLOSED_OPENER = re.compile(r"^(do|does|did|is|are|was|were|can|will|have|has|should)\b")

# Without a "?" an auxiliary only counts as a question with a subject after it
_CLOSED_OPENER_STRICT = re.compile(
    r"^(do|does|did|is|are|was|were|can|will|have|has|should)\s+"
    r"(you|it|we|they|he|she|there|the|this|that|these|those|your|our|i|anyone|anything)\b"
)

_FOLLOW_UP_PHRASE = re.compile(
    r"^(you mentioned|you said|earlier you said|you were saying|tell me more|can you expand|"
    r"could you expand|what do you mean|how so|in what way|that's interesting|that sounds|"
    r"go back to|going back to|coming back to)\b"
)

_SOLUTION_LANGUAGE = re.compile(r"\b(solution|fix|implement|change|improv|should|need to)\w*")

_GREETING = re.compile(
    r"\b(hello|hi|hey|good (morning|afternoon|evening)|thanks? (you )?for (your|making) time|"
    r"nice to meet|my name is|i'?m the (business )?analyst|introduce myself)\b"
)

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

STOP_WORDS = frozenset({
    "about", "after", "again", "also", "because", "been", "before", "being", "could",
    "does", "doing", "each", "from", "have", "having", "here", "into", "just", "know",
    "like", "make", "many", "more", "most", "much", "only", "other", "over", "really",
    "should", "some", "such", "tell", "than", "thank", "thanks", "that", "their", "them",
    "then", "there", "these", "they", "thing", "things", "think", "this", "those", "very",
    "want", "were", "what", "when", "where", "which", "while", "will", "with", "would",
    "your", "yours", "yeah",
})


def normalize(text: str) -> str:
    """Lowercase, drop punctuation except apostrophes, collapse whitespace."""
    text = re.sub(r"[^\w\s']", " ", (text or "").lower())
    return re.sub(r"\s+", " ", text).strip()


def sentences(text: str) -> list[str]:
    """Split text into sentences, keeping their terminal punctuation."""
    return [s.strip() for s in _SENTENCE_SPLIT.split((text or "").strip()) if s.strip()]


def strip_fillers(normalized: str) -> str:
    words = normalized.split()
    while words and words[0] in FILLER_WORDS:
        words.pop(0)
    return " ".join(words)


def _opening(sentence: str) -> str:
    return strip_fillers(normalize(sentence))


def _is_question_sentence(sentence: str) -> bool:
    if sentence.rstrip().endswith("?"):
        return True
    opening = _opening(sentence)
    return bool(_INTERROGATIVE_OPENER.match(opening) or _CLOSED_OPENER_STRICT.match(opening))


def question_sentences(text: str) -> list[str]:
    """The sentences of ``text`` that read as questions."""
    found = [s for s in sentences(text) if _is_question_sentence(s)]
    if not found and "?" in (text or ""):
        # A "?" in the middle of a run-on turn
        found = [text.strip()]
    return found


def is_question(text: str) -> bool:
    return bool(question_sentences(text))


def is_closed_question(text: str) -> bool:
    """True when every question in ``text`` invites a yes/no answer."""
    questions = question_sentences(text)
    if not questions:
        return False
    return all(_CLOSED_OPENER.match(_opening(q)) for q in questions)


def is_open_question(text: str) -> bool:
    return is_question(text) and not is_closed_question(text)


def mentions_solution_language(text: str) -> bool:
    return bool(_SOLUTION_LANGUAGE.search(normalize(text)))


def has_greeting(text: str) -> bool:
    return bool(_GREETING.search(normalize(text)))


def content_words(text: str) -> set[str]:
    """Words long enough to carry topic, minus stop words."""
    return {w.strip("'") for w in normalize(text).split() if len(w) >= 4 and w not in STOP_WORDS}


def looks_like_follow_up(question: str, counterpart_texts: list[str]) -> bool:
    """Whether a question builds on what the counterpart just said.

    Either it opens with a follow-up phrase ("you mentioned", "tell me more")
    or it reuses a content word from one of the recent counterpart turns.
    """
    if not counterpart_texts:
        return False
    if _FOLLOW_UP_PHRASE.match(_opening(question)):
        return True
    asked = content_words(question)
    return any(asked & content_words(text) for text in counterpart_texts)


def count_words(text: str) -> int:
    return len((text or "").split())


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


# Ordered (pattern, template) pairs; the first match wins. Patterns run
# against the question with fillers and the trailing "?" removed.
_REWRITES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^should (?:we|i)\b.*", re.I),
     "What options have you considered, and what would success look like?"),
    (re.compile(r"^can you ((?:tell me|walk me through|describe|explain|show me|share)\b.*)", re.I),
     "{0}."),
    (re.compile(r"^(?:can|could|will|would) you (.+)", re.I),
     "What would it take to {0}?"),
    (re.compile(r"^(?:do|does) (?:you|your team) have (?:any |a |an |the )?(.+)", re.I),
     "What {0} do you have?"),
    (re.compile(r"^(?:do|did) you (.+)", re.I),
     "Tell me about how you {0}."),
    (re.compile(r"^(?:are|were) you (.+)", re.I),
     "Tell me more about how you are {0}."),
    (re.compile(r"^(?:have|has) you (.+)", re.I),
     "Tell me about the times you have {0}."),
    (re.compile(r"^(?:is|are) there (?:any |a |an )?(.+)", re.I),
     "Tell me about {0}."),
    (re.compile(r"^(?:is|was|does|did) it (.+)", re.I),
     "What makes it {0}?"),
    (re.compile(r"^(?:is|are|was|were|does) (.+)", re.I),
     "What makes {0}?"),
    (re.compile(r"^(do|did|have|has|will|can|should) (.+)", re.I),
     "How {0} {1}?"),
]


def rewrite_to_open(question: str) -> str:
    """Turn a closed yes/no question into an open-ended alternative.

    Returns the question unchanged when no rewrite rule applies.
    """
    closed = [q for q in question_sentences(question) if _CLOSED_OPENER.match(_opening(q))]
    if not closed:
        return question

    words = closed[0].strip().split()
    while words and words[0].lower().strip(",") in FILLER_WORDS:
        words.pop(0)
    core = " ".join(words).rstrip("?!. ").strip()

    for pattern, template in _REWRITES:
        match = pattern.match(core)
        if match:
            groups = list(match.groups())
            if len(groups) > 1:
                # Captured auxiliary verb moves mid-sentence
                groups[0] = groups[0].lower()
            return _capitalize(template.format(*groups))
    return question
