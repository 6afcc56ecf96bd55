"""Failure taxonomy for chat session workflows."""


class StoreError(Exception):
    """A transactional save failed. Prior committed state is left intact."""


class StaleReferenceError(Exception):
    """A stored entity reference is malformed or points at a missing record."""


class InvariantViolation(Exception):
    """Selection references a chat that is not in the repository."""
