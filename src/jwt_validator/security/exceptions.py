"""
Custom exceptions and verification error kinds for the token engine.
"""
from enum import Enum


class JWTError(Exception):
    """Base exception for JWT-related errors."""
    pass


class KeyLoadError(JWTError):
    """Key material is missing, unreadable or not valid for the algorithm."""
    pass


class ClaimsError(JWTError):
    """Subject or caller-supplied claims cannot be issued."""
    pass


class ReservedClaimError(ClaimsError):
    """A caller-supplied claim uses a name the issuer sets itself."""

    def __init__(self, names):
        self.names = tuple(names)
        super().__init__(
            f"Reserved claim(s) cannot be supplied: {', '.join(self.names)}"
        )


class ErrorKind(str, Enum):
    """Reason a token failed verification."""
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    ALGORITHM_MISMATCH = "algorithm_mismatch"
    CLAIM_MISMATCH = "claim_mismatch"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
