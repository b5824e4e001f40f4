"""
Algorithm selection: maps the configured identifier to signing credentials.
"""
from dataclasses import dataclass

from jwt_validator.config.jwt_config import JWTSettings

from .key_manager import KeyManager, SigningKey, VerificationKey

DEFAULT_ALGORITHM = "HS256"
SUPPORTED_ALGORITHMS = ("HS256", "HS512", "RS256")
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
RSA_ALGORITHMS = ("RS256", "RS384", "RS512", "PS256", "PS384", "PS512")


@dataclass(frozen=True)
class AlgorithmStrategy:
    """Signing credentials chosen for an engine instance."""
    alg_id: str
    signing_key: SigningKey
    verification_key: VerificationKey
    fallback: bool = False

    @property
    def family(self) -> tuple:
        """Algorithm identifiers that accept this strategy's key type."""
        if self.alg_id in RSA_ALGORITHMS:
            return RSA_ALGORITHMS
        return HMAC_ALGORITHMS


def select_algorithm(settings: JWTSettings, key_manager: KeyManager) -> AlgorithmStrategy:
    """
    Select the signing algorithm and keys for the configured identifier.

    The match is case-insensitive. Unrecognised identifiers fall back to
    HS256 with the shared secret; ``fallback`` is set on the result so the
    caller can report the substitution.

    Args:
        settings: JWT settings
        key_manager: Key material loaded for the same settings

    Returns:
        AlgorithmStrategy for issuing and verifying tokens
    """
    requested = settings.algorithm.upper()

    if requested == "RS256":
        alg_id = "RS256"
    elif requested == "HS512":
        alg_id = "HS512"
    else:
        alg_id = DEFAULT_ALGORITHM

    return AlgorithmStrategy(
        alg_id=alg_id,
        signing_key=key_manager.signing_key,
        verification_key=key_manager.verification_key,
        fallback=requested not in SUPPORTED_ALGORITHMS,
    )
