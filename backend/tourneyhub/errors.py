"""
Error taxonomy shared by the services and the HTTP boundary.

Every error carries a user-safe message and the HTTP status it maps to.
Services raise these; ``main.create_app`` renders them as ``{"error": message}``.
Persistence failures are not part of the taxonomy: they propagate as
``SQLAlchemyError`` and are mapped to 500 once, at the application boundary.
"""


class AccessError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class Unauthenticated(AccessError):
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class Forbidden(AccessError):
    status_code = 403


class NotFound(AccessError):
    status_code = 404


class AlreadyInState(AccessError):
    status_code = 400


class AlreadyLocked(AlreadyInState):
    pass


class NotLocked(AlreadyInState):
    pass


class StructuralInvalid(AccessError):
    status_code = 400

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvitationError(AccessError):
    status_code = 400
