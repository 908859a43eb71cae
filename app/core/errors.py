"""
Application errors.

GenerationError is recoverable: the agent phase that made the LLM call absorbs it
and substitutes a deterministic fallback. AgentStateError and its subclasses mean
the loop state was built wrong; they abort the run and surface as HTTP 500.
"""


class GenerationError(Exception):
    """Raised when the text-generation service fails or returns nothing usable."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AgentStateError(Exception):
    """Base for structural errors in the agent loop state (programming bugs, not user input)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnknownActionError(AgentStateError):
    """Raised when next_action is not one of plan, execute, evaluate, finish."""

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"Unknown next_action: {action!r}")


class InvalidStateError(AgentStateError):
    """Raised when plan, cursor and history are out of lock-step."""
