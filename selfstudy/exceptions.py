"""Exceptions raised by the course player."""


class SelfStudyError(Exception):
    """Base class for course player errors."""
    pass


class ContentError(SelfStudyError):
    """Raised when course content cannot be loaded."""
    pass


class NavigationError(SelfStudyError):
    """Raised when the controller is driven out of order."""
    pass


class StorageError(SelfStudyError):
    """Raised by storage backends when a read or write fails."""
    pass
