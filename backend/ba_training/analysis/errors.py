"""Exceptions raised by the feedback analysis pipeline."""


class AnalysisError(Exception):
    """Base class for analysis pipeline errors."""


class CatalogError(AnalysisError):
    """The static stage catalog is malformed."""


class ContractError(AnalysisError):
    """Scores and stage definition disagree about the required areas.

    This is a programming error (catalog/code mismatch), never a data issue,
    so the fallback chain does not recover from it.
    """


class UnknownStageError(AnalysisError, KeyError):
    """No stage with the requested id exists in the catalog."""

    def __init__(self, stage_id: str) -> None:
        super().__init__(stage_id)
        self.stage_id = stage_id

    def __str__(self) -> str:
        return f"Unknown training stage: {self.stage_id!r}"
