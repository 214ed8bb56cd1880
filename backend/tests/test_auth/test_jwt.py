"""Unit tests for JWT token creation, decoding, and validation."""

from datetime import timedelta

import pytest
from jose import JWTError

from membership_access.auth.jwt import create_access_token, create_subject_token, decode_token


class TestCreateAccessToken:
    """Test access token creation."""

    def test_contains_type_access(self):
        token = create_access_token({"sub": "42"})
        payload = decode_token(token)
        assert payload["type"] == "access"

    def test_contains_sub_claim(self):
        token = create_access_token({"sub": "77"})
        payload = decode_token(token)
        assert payload["sub"] == "77"

    def test_contains_iat_and_exp_claims(self):
        payload = decode_token(create_access_token({"sub": "42"}))
        assert "iat" in payload
        assert "exp" in payload

    def test_custom_expiry_delta(self):
        token = create_access_token({"sub": "42"}, expires_delta=timedelta(hours=1))
        payload = decode_token(token)
        # Token should be valid (not expired)
        assert payload["sub"] == "42"


class TestCreateSubjectToken:
    def test_customer_role_by_default(self):
        payload = decode_token(create_subject_token(42))
        assert payload["sub"] == "42"
        assert payload["role"] == "customer"

    def test_admin_role(self):
        payload = decode_token(create_subject_token(1, role="admin"))
        assert payload["role"] == "admin"


class TestDecodeToken:
    """Test token decoding and validation."""

    def test_decode_expired_token_raises(self):
        token = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_token(token)

    def test_decode_invalid_token_raises(self):
        with pytest.raises(JWTError):
            decode_token("not.a.valid.token")

    def test_decode_empty_string_raises(self):
        with pytest.raises(JWTError):
            decode_token("")
