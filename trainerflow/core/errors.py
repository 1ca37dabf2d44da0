from __future__ import annotations

from collections.abc import Sequence


class TrainerFlowError(Exception):
    """Base class for errors raised by the flow and session core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(TrainerFlowError):
    """A flow, node or session does not exist."""


class Conflict(TrainerFlowError):
    """The request clashes with the current state of a flow or session."""


class ValidationFailed(Conflict):
    """A graph failed structural validation. Carries every error found."""

    def __init__(self, errors: Sequence[str], message: str = "Flow validation failed"):
        super().__init__(message)
        self.errors = list(errors)
