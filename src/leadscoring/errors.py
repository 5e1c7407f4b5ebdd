"""Error types raised by the lead scoring pipeline."""


class LeadScoringError(Exception):
    """Base class for all pipeline errors."""


class MissingFieldError(LeadScoringError, KeyError):
    """An input event lacks a property the pipeline requires."""

    def __init__(self, field: str, context: str = ""):
        self.field = field
        self.context = context
        message = f"missing required field '{field}'"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class EncodingError(LeadScoringError):
    """The categorical map is missing its default code."""


class TrainingError(LeadScoringError):
    """The training set is empty or degenerate; no model is produced."""


class TrainingCancelled(TrainingError):
    """Training was cancelled or timed out between tree iterations."""


class ConfigError(LeadScoringError, ValueError):
    """Engine configuration is missing a key or holds an invalid value."""
