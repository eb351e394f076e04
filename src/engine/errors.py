"""
Exception classes for the bracket engine.

Every error carries a short machine-readable ``code`` that the HTTP layer
returns as ``error`` and maps to a status code.
"""


class BracketError(Exception):
    """Base for every error raised while building or advancing a bracket."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or "BRACKET_ERROR"

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class ValidationError(BracketError):
    """
    Player lists, stored documents or request bodies that cannot be used.

    ``field`` names the offending key (``players``, ``id``, ``scores`` ...).
    """
    def __init__(self, message: str, field: str = None):
        super().__init__(message, "VALIDATION_ERROR")
        self.field = field

    def to_dict(self):
        result = super().to_dict()
        if self.field:
            result['field'] = self.field
        return result


class NotFoundError(BracketError):
    """A match id absent from the bracket, or an event with no stored bracket."""

    def __init__(self, resource: str, id: str = None):
        message = f"{resource} {id} not found" if id else f"{resource} not found"
        super().__init__(message, "NOT_FOUND")
        self.resource = resource
        self.id = id


class InvalidStateError(BracketError):
    """
    Raised when a match is not in a state that allows the operation
    """
    def __init__(self, message: str, state: str = None):
        super().__init__(message, "INVALID_STATE")
        self.state = state

    def to_dict(self):
        result = super().to_dict()
        if self.state:
            result['state'] = self.state
        return result


class InvalidArgumentError(BracketError):
    """
    Raised when the declared winner is not a participant of the match
    """
    def __init__(self, message: str, argument: str = None):
        super().__init__(message, "INVALID_ARGUMENT")
        self.argument = argument
