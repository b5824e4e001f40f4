"""
Pytest configuration and fixtures for testing.
"""
from datetime import datetime, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa, ec
from cryptography.hazmat.backends import default_backend

from jwt_validator.config.jwt_config import JWTSettings

TEST_SECRET = "test-secret-please-32-bytes-min"
FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def _write_pem_pair(directory, private_key, prefix):
    """Write a private/public PEM pair and return their paths."""
    private_path = directory / f"{prefix}_private.pem"
    public_path = directory / f"{prefix}_public.pem"

    private_path.write_bytes(private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ))
    public_path.write_bytes(private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ))
    return str(private_path), str(public_path)


@pytest.fixture(scope="session")
def rsa_key_files(tmp_path_factory):
    """
    Generate two RSA key pairs on disk.

    Returns:
        dict with "key1"/"key2" entries holding private/public PEM paths
    """
    directory = tmp_path_factory.mktemp("keys")
    keys = {}
    for name in ("key1", "key2"):
        private_key = rsa.generate_private_key(
            public_exponent=65537, key_size=2048, backend=default_backend()
        )
        private_path, public_path = _write_pem_pair(directory, private_key, name)
        keys[name] = {"private": private_path, "public": public_path}
    return keys


@pytest.fixture(scope="session")
def ec_key_files(tmp_path_factory):
    """Generate an ECDSA key pair on disk (not usable for RS256)."""
    directory = tmp_path_factory.mktemp("ec_keys")
    private_key = ec.generate_private_key(ec.SECP256R1(), default_backend())
    private_path, public_path = _write_pem_pair(directory, private_key, "ec")
    return {"private": private_path, "public": public_path}


@pytest.fixture
def hs_settings():
    """HS256 settings from the reference scenario."""
    return JWTSettings(
        secret=TEST_SECRET,
        issuer="app",
        audience="app-users",
        expiry_minutes=15,
        algorithm="HS256",
    )


@pytest.fixture
def rs_settings(rsa_key_files):
    """RS256 settings using the first generated key pair."""
    return JWTSettings(
        issuer="app",
        audience="app-users",
        expiry_minutes=15,
        algorithm="RS256",
        private_key_path=rsa_key_files["key1"]["private"],
        public_key_path=rsa_key_files["key1"]["public"],
    )


@pytest.fixture
def fixed_clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def fixed_now():
    return FIXED_NOW
