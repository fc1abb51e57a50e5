"""Error types shared by the core and the adapters."""


class TodoCalError(Exception):
    """Base class for all todocal errors."""

    pass


class ValidationError(TodoCalError):
    """Raised when input is rejected before reaching any store."""

    pass


class ConflictError(TodoCalError):
    """Raised when a timer is started while another one is running."""

    pass


class NotFoundError(TodoCalError):
    """Raised when an id does not match any known record."""

    pass


class PersistenceError(TodoCalError):
    """Raised when a record store call fails or times out."""

    pass
