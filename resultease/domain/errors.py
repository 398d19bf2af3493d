from __future__ import annotations

__all__ = ["DomainInvariantViolation"]


class DomainInvariantViolation(ValueError):
    """Raised when a domain object would be constructed in an invalid state.

    Reaching this from user input means the validation gate was bypassed.
    """
