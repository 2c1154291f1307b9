class AppError(Exception):
    """Base class for all engine exceptions."""
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler encounters a logical error or invalid state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details)

class ConfigurationError(AppError):
    """Raised when the schedule configuration is structurally unusable."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details)
