"""Exception hierarchy for the tool inventory backend."""


class ToolInventoryError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(ToolInventoryError):
    """Database driver or settings are unusable. Not retried."""


class DatabaseConnectionError(ToolInventoryError):
    """The database connection could not be opened, reopened or closed."""


class PersistenceError(ToolInventoryError):
    """A statement failed, or returned data that breaks a repository invariant."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"Error during {operation}: {message}")


class ValidationError(ToolInventoryError):
    """Caller-supplied tool data failed the required-field checks."""
