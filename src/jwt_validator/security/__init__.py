"""
JWT issuance and verification engine (HS256, HS512, RS256).

Example usage:
    from jwt_validator.config.jwt_config import JWTSettings
    from jwt_validator.security import JwtService, ErrorKind

    settings = JWTSettings(
        secret="a-shared-secret-of-at-least-32-bytes",
        issuer="app",
        audience="app-users",
        expiry_minutes=15,
    )
    service = JwtService(settings)

    token = service.generate_token("user-42", {"role": "admin"})

    result = service.validate_token(token)
    if result.valid:
        print(f"Subject: {result.claims['sub']}")
    elif result.error is ErrorKind.EXPIRED:
        print("Token has expired")
"""

from .exceptions import (
    JWTError,
    KeyLoadError,
    ClaimsError,
    ReservedClaimError,
    ErrorKind,
)
from .key_manager import KeyManager
from .algorithms import AlgorithmStrategy, select_algorithm
from .claims import ClaimsParseResult, parse_claims, parse_claim_pairs
from .token_operations import (
    CLOCK_SKEW_SECONDS,
    JwtService,
    TokenIssuer,
    TokenVerifier,
    VerificationResult,
)

__all__ = [
    "JWTError",
    "KeyLoadError",
    "ClaimsError",
    "ReservedClaimError",
    "ErrorKind",
    "KeyManager",
    "AlgorithmStrategy",
    "select_algorithm",
    "ClaimsParseResult",
    "parse_claims",
    "parse_claim_pairs",
    "CLOCK_SKEW_SECONDS",
    "JwtService",
    "TokenIssuer",
    "TokenVerifier",
    "VerificationResult",
]
