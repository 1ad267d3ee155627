class DeckError(Exception):
    """Base exception for missiondeck domain errors."""

    pass


class StoreError(DeckError):
    """Raised when the structured store exists but cannot be read for a write."""

    pass


class TaskNotFoundError(DeckError):
    """Raised when a specified task cannot be found."""

    pass


class AgentNotFoundError(DeckError):
    """Raised when a specified agent cannot be found."""

    pass


class NotificationNotFoundError(DeckError):
    """Raised when a specified notification cannot be found."""

    pass


class InvalidTransitionError(DeckError):
    """Raised when a task cannot move to the requested status."""

    pass
