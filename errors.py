"""
errors.py
Exceptions raised by the data-access and domain modules.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when form input is invalid. Carries every message found."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(DomainError):
    """Raised when a document does not exist."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid or an account rule is broken."""
