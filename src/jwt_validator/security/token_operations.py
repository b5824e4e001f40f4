"""
JWT token operations for issuance and verification.
"""
import binascii
import json
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import jwt
from jwt.algorithms import get_default_algorithms
from jwt.exceptions import InvalidKeyError
from jwt.utils import base64url_decode
from pydantic import BaseModel, ConfigDict, Field

from jwt_validator.config.jwt_config import JWTSettings

from .algorithms import AlgorithmStrategy, select_algorithm
from .claims import build_claim_set
from .exceptions import ErrorKind
from .key_manager import KeyManager

CLOCK_SKEW_SECONDS = 30

_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VerificationResult(BaseModel):
    """Outcome of a single token verification."""
    model_config = ConfigDict(frozen=True)

    valid: bool = Field(..., description="Whether every verification gate passed")
    claims: Optional[Dict[str, Any]] = Field(None, description="Verified claims, only when valid")
    error: Optional[ErrorKind] = Field(None, description="First gate that failed")
    message: Optional[str] = Field(None, description="Human-readable failure detail")

    @classmethod
    def success(cls, claims: Dict[str, Any]) -> "VerificationResult":
        return cls(valid=True, claims=claims)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "VerificationResult":
        return cls(valid=False, error=error, message=message)


class TokenIssuer:
    """
    Builds and signs tokens for a subject.
    """

    def __init__(
        self,
        settings: JWTSettings,
        strategy: AlgorithmStrategy,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings
        self.strategy = strategy
        self._clock = clock or utc_now

    def issue(self, subject: str, extra_claims: Optional[Mapping[str, str]] = None) -> str:
        """
        Issue a signed token.

        The payload carries sub, jti and iat, the caller claims, then iss,
        aud, nbf (issuance time) and exp (issuance time + expiry minutes).

        Args:
            subject: Subject identity for the 'sub' claim
            extra_claims: Optional string claims to include

        Returns:
            Token string in header.payload.signature form

        Raises:
            ClaimsError: If the subject or claims cannot be issued
        """
        issued_at = int(self._clock().timestamp())

        payload = build_claim_set(subject, extra_claims, issued_at)
        payload["iss"] = self.settings.issuer
        payload["aud"] = self.settings.audience
        payload["nbf"] = issued_at
        payload["exp"] = issued_at + self.settings.expiry_minutes * 60

        return jwt.encode(
            payload,
            self.strategy.signing_key,
            algorithm=self.strategy.alg_id,
            headers={"typ": "JWT"},
        )


class TokenVerifier:
    """
    Verifies tokens through sequential gates, stopping at the first failure:

    1. structure (three base64url segments, JSON header and payload)
    2. signature
    3. algorithm matches the configured one
    4. issuer and audience
    5. lifetime (nbf/exp with 30 seconds of clock skew)
    """

    def __init__(
        self,
        settings: JWTSettings,
        strategy: AlgorithmStrategy,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings
        self.strategy = strategy
        self._clock = clock or utc_now
        self._algorithms = get_default_algorithms()

    def verify(self, token: str) -> VerificationResult:
        """
        Verify a token and return its claims when every gate passes.

        Never raises for bad input; failures are reported in the result and
        no claims are returned with them.
        """
        parsed = self.parse(token)
        if isinstance(parsed, VerificationResult):
            return parsed
        header, payload, signing_input, signature = parsed

        declared = header["alg"]

        failure = self._check_signature(declared, signing_input, signature)
        if failure is not None:
            return failure

        if declared.upper() != self.strategy.alg_id.upper():
            return VerificationResult.failure(
                ErrorKind.ALGORITHM_MISMATCH,
                f"Invalid signing algorithm: {declared}. Expected {self.strategy.alg_id}.",
            )

        if payload.get("iss") != self.settings.issuer:
            return VerificationResult.failure(
                ErrorKind.CLAIM_MISMATCH,
                f"Invalid token issuer: {payload.get('iss')!r}",
            )
        if payload.get("aud") != self.settings.audience:
            return VerificationResult.failure(
                ErrorKind.CLAIM_MISMATCH,
                f"Invalid token audience: {payload.get('aud')!r}",
            )

        failure = self._check_lifetime(payload)
        if failure is not None:
            return failure

        return VerificationResult.success(payload)

    def parse(self, token: str):
        """Split and decode a token without checking it; returns a failure result if malformed."""
        if not isinstance(token, str):
            return _malformed("Token must be a string")

        segments = token.strip().split(".")
        if len(segments) != 3:
            return _malformed("Token must have exactly three segments")
        if not all(_SEGMENT.fullmatch(segment) for segment in segments):
            return _malformed("Token segments must be non-empty base64url text")

        header_segment, payload_segment, signature_segment = segments
        try:
            header = json.loads(base64url_decode(header_segment))
            payload = json.loads(base64url_decode(payload_segment))
            signature = base64url_decode(signature_segment)
        except (binascii.Error, ValueError, RecursionError) as e:
            return _malformed(f"Token is malformed: {e}")

        if not isinstance(header, dict) or not isinstance(payload, dict):
            return _malformed("Token header and payload must be JSON objects")
        if not isinstance(header.get("alg"), str):
            return _malformed("Token header is missing 'alg'")

        signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
        return header, payload, signing_input, signature

    def _check_signature(
        self, declared: str, signing_input: bytes, signature: bytes
    ) -> Optional[VerificationResult]:
        algorithm = self._algorithms.get(declared.upper())
        if algorithm is None or declared.upper() not in self.strategy.family:
            return VerificationResult.failure(
                ErrorKind.ALGORITHM_MISMATCH,
                f"Algorithm {declared} cannot be used with the configured key.",
            )

        try:
            key = algorithm.prepare_key(self.strategy.verification_key)
        except InvalidKeyError as e:
            return VerificationResult.failure(
                ErrorKind.ALGORITHM_MISMATCH,
                f"Algorithm {declared} cannot be used with the configured key: {e}",
            )

        if not algorithm.verify(signing_input, key, signature):
            return VerificationResult.failure(
                ErrorKind.BAD_SIGNATURE, "Invalid token signature"
            )
        return None

    def _check_lifetime(self, payload: Dict[str, Any]) -> Optional[VerificationResult]:
        exp = payload.get("exp")
        nbf = payload.get("nbf")
        if not _is_timestamp(exp):
            return _malformed("Token 'exp' claim is missing or not an integer")
        if nbf is not None and not _is_timestamp(nbf):
            return _malformed("Token 'nbf' claim is not an integer")

        now = int(self._clock().timestamp())
        if now > exp + CLOCK_SKEW_SECONDS:
            return VerificationResult.failure(
                ErrorKind.EXPIRED, f"Token has expired (exp={exp}, now={now})"
            )
        if nbf is not None and now < nbf - CLOCK_SKEW_SECONDS:
            return VerificationResult.failure(
                ErrorKind.NOT_YET_VALID, f"Token is not yet valid (nbf={nbf}, now={now})"
            )
        return None


class JwtService:
    """
    Token engine for one settings record: loads keys once, then issues and
    verifies tokens. Holds no mutable state after construction.
    """

    def __init__(self, settings: JWTSettings, clock: Optional[Clock] = None):
        """
        Args:
            settings: JWT settings
            clock: Optional source of the current UTC time

        Raises:
            KeyLoadError: If the key material cannot be loaded
        """
        self.settings = settings
        self.key_manager = KeyManager(settings)
        self.strategy = select_algorithm(settings, self.key_manager)
        self.issuer = TokenIssuer(settings, self.strategy, clock)
        self.verifier = TokenVerifier(settings, self.strategy, clock)

    @property
    def algorithm(self) -> str:
        return self.strategy.alg_id

    def generate_token(
        self, subject: str, extra_claims: Optional[Mapping[str, str]] = None
    ) -> str:
        return self.issuer.issue(subject, extra_claims)

    def validate_token(self, token: str) -> VerificationResult:
        return self.verifier.verify(token)

    def decode_unverified(self, token: str) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
        """
        Decode a token's header and payload WITHOUT any verification.

        WARNING: the returned data is untrusted. Use only for inspection.

        Returns:
            Tuple of (header, payload), or None if the token is malformed
        """
        parsed = self.verifier.parse(token)
        if isinstance(parsed, VerificationResult):
            return None
        header, payload, _, _ = parsed
        return header, payload


def _malformed(message: str) -> VerificationResult:
    return VerificationResult.failure(ErrorKind.MALFORMED, message)


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
