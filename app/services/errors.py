from __future__ import annotations


class CompletionValidationError(ValueError):
    pass


class JobNotFoundError(LookupError):
    pass


class ItemNotFoundError(LookupError):
    pass


class WorkLogNotFoundError(LookupError):
    pass


class CompletionConflictError(RuntimeError):
    """Raised when concurrent updates to the same item keep colliding past the retry budget."""
