"""
Exceptions raised by the selection sync engine.
"""

SESSION_MISUSE_MESSAGE = "selection must be used within an active SelectionSession"


class SelectionError(Exception):
    """Base class for selection engine errors"""


class SelectionSessionError(SelectionError, RuntimeError):
    """Selection read or written outside an active session (wiring bug)"""

    def __init__(self, message=SESSION_MISUSE_MESSAGE):
        super().__init__(message)


class SelectionValueError(SelectionError, ValueError):
    """Malformed selection facet"""
