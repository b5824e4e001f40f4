"""
Key manager for loading JWT signing and verification key material.
"""
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.backends import default_backend

from jwt_validator.config.jwt_config import JWTSettings

from .exceptions import KeyLoadError

ASYMMETRIC_ALGORITHMS = ("RS256",)

SigningKey = Union[bytes, rsa.RSAPrivateKey]
VerificationKey = Union[bytes, rsa.RSAPublicKey]


class KeyManager:
    """
    Holds the key material for one engine instance.

    Owns exactly one of:
    - a symmetric secret (HS256/HS512), used for both signing and verification
    - an RSA key pair (RS256), private key for signing, public key for verification

    Key files are read once in the constructor; the instance is never mutated
    afterwards, so it can be shared between threads.
    """

    def __init__(self, settings: JWTSettings):
        """
        Load key material for the configured algorithm.

        Args:
            settings: JWT settings carrying the secret or the PEM key paths

        Raises:
            KeyLoadError: If the key material is missing, unreadable or invalid
        """
        self.algorithm = settings.algorithm.upper()
        self._secret: Optional[bytes] = None
        self._private_key: Optional[rsa.RSAPrivateKey] = None
        self._public_key: Optional[rsa.RSAPublicKey] = None

        if self.algorithm in ASYMMETRIC_ALGORITHMS:
            if not settings.private_key_path or not settings.public_key_path:
                raise KeyLoadError(
                    f"RSA key paths must be specified for {self.algorithm} algorithm."
                )
            self._private_key = _load_private_key(settings.private_key_path)
            self._public_key = _load_public_key(settings.public_key_path)
        else:
            # HS256, HS512 and unrecognised identifiers all use the shared secret
            if not settings.secret:
                raise KeyLoadError(
                    f"A non-empty secret is required for {self.algorithm} algorithm."
                )
            self._secret = settings.secret.encode("utf-8")

    @property
    def is_symmetric(self) -> bool:
        return self._secret is not None

    @property
    def signing_key(self) -> SigningKey:
        """Get the key used to sign tokens."""
        if self._secret is not None:
            return self._secret
        return self._private_key

    @property
    def verification_key(self) -> VerificationKey:
        """Get the key used to verify token signatures."""
        if self._secret is not None:
            return self._secret
        return self._public_key


def _read_pem(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise KeyLoadError(f"Could not read key file {path}: {e}") from e


def _load_private_key(path: str) -> rsa.RSAPrivateKey:
    pem = _read_pem(path)
    try:
        key = serialization.load_pem_private_key(
            pem,
            password=None,
            backend=default_backend()
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"Invalid PEM private key in {path}: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError(f"Private key in {path} is not an RSA key")
    return key


def _load_public_key(path: str) -> rsa.RSAPublicKey:
    pem = _read_pem(path)
    try:
        key = serialization.load_pem_public_key(
            pem,
            backend=default_backend()
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"Invalid PEM public key in {path}: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyLoadError(f"Public key in {path} is not an RSA key")
    return key
