"""
Tests for token issuance.
"""
import jwt
import pytest

from jwt_validator.security import ClaimsError, JwtService, ReservedClaimError


@pytest.fixture
def service(hs_settings, fixed_clock):
    return JwtService(hs_settings, clock=fixed_clock)


class TestTokenGeneration:
    """Tests for token generation."""

    def test_three_segments(self, service):
        token = service.generate_token("user-42")

        assert isinstance(token, str)
        segments = token.split(".")
        assert len(segments) == 3
        assert all(segments)
        assert not any("=" in segment for segment in segments)

    def test_header(self, service):
        header = jwt.get_unverified_header(service.generate_token("user-42"))

        assert header["alg"] == "HS256"
        assert header["typ"] == "JWT"

    def test_payload(self, service, fixed_now):
        token = service.generate_token("user-42", {"role": "admin"})
        payload = jwt.decode(token, options={"verify_signature": False})
        now = int(fixed_now.timestamp())

        assert payload["sub"] == "user-42"
        assert payload["role"] == "admin"
        assert payload["iss"] == "app"
        assert payload["aud"] == "app-users"
        assert payload["iat"] == now
        assert payload["nbf"] == now
        assert payload["exp"] == now + 15 * 60
        assert list(payload) == ["sub", "jti", "iat", "role", "iss", "aud", "nbf", "exp"]

    def test_signature_verifies_with_pyjwt(self, service, hs_settings, fixed_now):
        """Tokens are standard JWTs that other libraries accept."""
        token = service.generate_token("user-42")
        payload = jwt.decode(
            token,
            hs_settings.secret,
            algorithms=["HS256"],
            audience="app-users",
            issuer="app",
            options={"verify_exp": False, "verify_nbf": False, "verify_iat": False},
        )
        assert payload["sub"] == "user-42"

    def test_unique_jti(self, service):
        first = jwt.decode(service.generate_token("user-42"), options={"verify_signature": False})
        second = jwt.decode(service.generate_token("user-42"), options={"verify_signature": False})

        assert first["jti"] != second["jti"]

    def test_hs512_header(self, hs_settings, fixed_clock):
        settings = hs_settings.model_copy(update={"algorithm": "HS512", "secret": "s" * 64})
        token = JwtService(settings, clock=fixed_clock).generate_token("user-42")

        assert jwt.get_unverified_header(token)["alg"] == "HS512"

    def test_rs256_verifies_with_public_key(self, rs_settings, fixed_clock):
        service = JwtService(rs_settings, clock=fixed_clock)
        token = service.generate_token("user-42")

        assert jwt.get_unverified_header(token)["alg"] == "RS256"
        payload = jwt.decode(
            token,
            service.key_manager.verification_key,
            algorithms=["RS256"],
            audience="app-users",
            options={"verify_exp": False, "verify_nbf": False, "verify_iat": False},
        )
        assert payload["sub"] == "user-42"

    def test_unknown_algorithm_issues_hs256(self, hs_settings):
        service = JwtService(hs_settings.model_copy(update={"algorithm": "HS384"}))

        assert service.algorithm == "HS256"
        assert service.strategy.fallback is True
        assert jwt.get_unverified_header(service.generate_token("u"))["alg"] == "HS256"


class TestIssuanceErrors:
    """Tests for invalid issuance input."""

    def test_reserved_claim_not_overwritten(self, service):
        with pytest.raises(ReservedClaimError):
            service.generate_token("user-42", {"sub": "admin"})

    def test_registered_claim_rejected(self, service):
        with pytest.raises(ReservedClaimError):
            service.generate_token("user-42", {"exp": "9999999999"})

    def test_empty_subject(self, service):
        with pytest.raises(ClaimsError):
            service.generate_token("")

    def test_non_utf8_claim(self, service):
        with pytest.raises(ClaimsError):
            service.generate_token("user-42", {"note": "\ud800"})
