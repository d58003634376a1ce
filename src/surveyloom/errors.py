from __future__ import annotations


class GenerationError(Exception):
    """Raised when a survey schema could not be fetched, parsed or validated."""


class InvalidLifecycleAction(Exception):
    """Raised when an action is issued in a lifecycle state that does not allow it."""
