"""
Domain error taxonomy.

Every error carries a stable numeric ``code`` that clients use for
localisation, plus a short human readable ``message``.  The HTTP layer
maps each class to a status code; the engine itself never looks at HTTP.
"""

from __future__ import annotations


class DomainError(Exception):
    code: int = 0
    message: str = "Internal Server Error"
    description: str = ""

    def __init__(self, description: str | None = None):
        if description is not None:
            self.description = description
        super().__init__(self.description or self.message)


# ── Session / identity ────────────────────────────────────────────────


class InvalidToken(DomainError):
    code = 1
    message = "Token Validation Error"
    description = "Invalid Token Provided"


class TokenExpired(DomainError):
    code = 2
    message = "Token Expired Error"
    description = "The provided token has expired."


class MissingToken(DomainError):
    code = 3
    message = "Missing Token Error"
    description = "Could not find auth token in request header."


class AuthenticationFailed(DomainError):
    code = 6
    message = "Authentication Error"
    description = "Invalid Email or Password"


class InvalidRole(DomainError):
    code = 9
    message = "Invalid Role Error"
    description = "Your role does not permit this action."


# ── Missing entities ──────────────────────────────────────────────────


class UserNotFound(DomainError):
    code = 4
    message = "User Not Found Error"
    description = "No user matching the request could be found."


class BookingNotFound(DomainError):
    code = 10
    message = "Booking Not Found Error"
    description = "No booking matching the request could be found."


class CompanyNotFound(DomainError):
    code = 15
    message = "Company Not Found Error"
    description = "No company matching the request could be found."


# ── Authorization ─────────────────────────────────────────────────────


class UnauthorizedView(DomainError):
    code = 12
    message = "Unauthorized View Error"
    description = "You are not authorized to view this record."


class UnauthorizedEdit(DomainError):
    code = 13
    message = "Unauthorized Edit Error"
    description = "You are not authorized to edit this record."


# ── Business rules ────────────────────────────────────────────────────


class UserAlreadyExists(DomainError):
    code = 5
    message = "User Already Exists Error"

    def __init__(self, email: str):
        super().__init__(f'User Already Exists with Email "{email}"')


class CustomerAlreadyHasActiveBooking(DomainError):
    code = 11
    message = "Customer Already Has Active Booking Error"
    description = "Finish or cancel your current booking before making a new one."


class DriverAlreadyAdded(DomainError):
    code = 16
    message = "Driver Already Added Error"
    description = "That user is already a driver."


class ValidationError(DomainError):
    """Payload or business-rule violation; may carry several messages."""

    code = 7
    message = "Validation Error"

    def __init__(self, *errors: str):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvalidObjectId(DomainError):
    code = 8
    message = "Invalid Object Id Error"
    description = "The id provided is not valid."
