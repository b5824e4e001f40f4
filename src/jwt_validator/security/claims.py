"""
Claim-set construction and parsing of caller-supplied claims.
"""
import json
import uuid
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from .exceptions import ClaimsError, ReservedClaimError

# Claims the issuer always sets itself
RESERVED_CLAIMS = ("sub", "jti", "iat")
# Claims derived from settings and issuance time
REGISTERED_CLAIMS = ("iss", "aud", "nbf", "exp")


class ClaimsParseResult(BaseModel):
    """Outcome of parsing a claims JSON document."""
    claims: Optional[Dict[str, str]] = Field(None, description="Parsed claims")
    error: Optional[str] = Field(None, description="Why the document was rejected")

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_claims(text: Optional[str]) -> ClaimsParseResult:
    """
    Parse a JSON object of string claims, e.g. ``{"role": "admin"}``.

    Never raises; an invalid document is reported through ``error``.
    Blank input yields an empty successful result.
    """
    if text is None or not text.strip():
        return ClaimsParseResult(claims=None)

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        return ClaimsParseResult(error=f"Invalid JSON format for claims: {e.msg}")
    except RecursionError:
        return ClaimsParseResult(error="Invalid JSON format for claims: nested too deeply")

    if not isinstance(document, dict):
        return ClaimsParseResult(error="Claims must be a JSON object of string values")

    non_strings = [key for key, value in document.items() if not isinstance(value, str)]
    if non_strings:
        return ClaimsParseResult(
            error=f"Claim values must be strings: {', '.join(non_strings)}"
        )

    return ClaimsParseResult(claims=document)


def parse_claim_pairs(lines: Iterable[str]) -> Tuple[Dict[str, str], List[str]]:
    """
    Parse ``key=value`` lines into claims.

    Returns:
        Tuple of (claims, rejected lines)
    """
    claims: Dict[str, str] = {}
    rejected: List[str] = []
    for line in lines:
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            rejected.append(line)
            continue
        claims[key.strip()] = value.strip()
    return claims, rejected


def validate_extra_claims(extra_claims: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """
    Check caller claims before issuance.

    Raises:
        ReservedClaimError: If a claim name is reserved or registered
        ClaimsError: If a name or value is not a UTF-8 encodable string
    """
    if not extra_claims:
        return {}

    collisions = [
        name for name in extra_claims
        if name in RESERVED_CLAIMS or name in REGISTERED_CLAIMS
    ]
    if collisions:
        raise ReservedClaimError(collisions)

    claims: Dict[str, str] = {}
    for name, value in extra_claims.items():
        if not isinstance(name, str) or not name:
            raise ClaimsError(f"Claim names must be non-empty strings: {name!r}")
        if not isinstance(value, str):
            raise ClaimsError(f"Claim '{name}' must be a string, got {type(value).__name__}")
        _require_utf8(name, value)
        claims[name] = value
    return claims


def build_claim_set(
    subject: str,
    extra_claims: Optional[Mapping[str, str]],
    issued_at: int,
) -> Dict[str, object]:
    """
    Build the ordered claim set: sub, jti, iat, then caller claims.

    Args:
        subject: Subject identity for the 'sub' claim
        extra_claims: Optional caller claims
        issued_at: Issuance Unix timestamp

    Returns:
        Claim set as an insertion-ordered dictionary
    """
    if not isinstance(subject, str) or not subject:
        raise ClaimsError("Subject must be a non-empty string")
    _require_utf8("sub", subject)

    claims: Dict[str, object] = {
        "sub": subject,
        "jti": str(uuid.uuid4()),
        "iat": issued_at,
    }
    claims.update(validate_extra_claims(extra_claims))
    return claims


def _require_utf8(name: str, value: str) -> None:
    try:
        name.encode("utf-8")
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ClaimsError(f"Claim '{name}' is not valid UTF-8 text") from e
