"""Service-layer exceptions.

Routes catch QuestBoardError and turn it into a JSON error response
using ``status_code``. The scheduler records them as job errors.
"""

from typing import Optional


class QuestBoardError(Exception):
    """Base exception for Quest Board service errors."""

    def __init__(self, message: str, status_code: int = 400, details: Optional[dict] = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(QuestBoardError):
    def __init__(self, message: str):
        super().__init__(message, 404)


class InvalidStateError(QuestBoardError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class ForbiddenError(QuestBoardError):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, 403, details)


class InsufficientFundsError(QuestBoardError):
    def __init__(self, message: str, required: Optional[int] = None, current: Optional[int] = None):
        details = None
        if required is not None:
            details = {'required': required, 'current': current}
        super().__init__(message, 400, details)


class ValidationError(QuestBoardError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class ConfigurationError(QuestBoardError):
    def __init__(self, message: str):
        super().__init__(message, 500)


class StoreUnavailableError(QuestBoardError):
    def __init__(self, message: str):
        super().__init__(message, 503)
