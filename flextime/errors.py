# errors.py
"""
Application error taxonomy.
Services raise these exceptions; the error handler registered in the application
factory renders them as JSON with the matching HTTP status.
"""


class FlexTimeError(Exception):
    """Base exception for all flex time errors."""

    status_code = 500
    error_code = 'internal_error'

    def __init__(self, message=None, details=None):
        self.message = message or 'An unexpected error occurred'
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        result = {
            'success': False,
            'error_code': self.error_code,
            'message': self.message
        }
        if self.details:
            result['details'] = self.details
        return result


class UnauthenticatedError(FlexTimeError):
    """Raised when there is no caller identity."""
    status_code = 401
    error_code = 'unauthenticated'

    def __init__(self, message='Authentication required', details=None):
        super().__init__(message, details)


class ForbiddenError(FlexTimeError):
    """Raised on a role or ownership mismatch."""
    status_code = 403
    error_code = 'forbidden'

    def __init__(self, message='Forbidden', details=None):
        super().__init__(message, details)


class NotFoundError(FlexTimeError):
    """Raised when a referenced entity is missing."""
    status_code = 404
    error_code = 'not_found'

    def __init__(self, message='Not found', details=None):
        super().__init__(message, details)


class ValidationError(FlexTimeError):
    """Raised for malformed or rule-violating input."""
    status_code = 400
    error_code = 'validation_error'


class ConflictError(FlexTimeError):
    """Raised for capacity, lock and duplicate-resource conflicts."""
    status_code = 409
    error_code = 'conflict'


class InternalError(FlexTimeError):
    """Raised for storage or delivery failures. The message stays generic."""
    status_code = 500
    error_code = 'internal_error'

    def __init__(self, message='Internal server error', details=None):
        super().__init__(message, details)
