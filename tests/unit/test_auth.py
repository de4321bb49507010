"""Tests for auth utility functions."""
import pytest
from datetime import timedelta


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_create_access_token_basic(self):
        """Test creating a basic JWT access token."""
        from prep_tracker.utils.auth import create_access_token

        token = create_access_token(user_id=42)

        assert isinstance(token, str)
        assert token.count(".") == 2

    def test_verify_access_token_roundtrip(self):
        """Test that the user ID comes back as an integer."""
        from prep_tracker.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id=42)

        assert verify_access_token(token) == 42

    def test_verify_access_token_expired(self):
        """Test that expired tokens are rejected."""
        from jose import JWTError
        from prep_tracker.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id=42, expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_verify_access_token_invalid(self):
        """Test that garbage tokens are rejected."""
        from jose import JWTError
        from prep_tracker.utils.auth import verify_access_token

        with pytest.raises(JWTError):
            verify_access_token("not.a.token")

    def test_verify_access_token_wrong_secret(self):
        """Test that tokens signed with another secret are rejected."""
        from jose import JWTError, jwt
        from prep_tracker.utils.auth import verify_access_token

        token = jwt.encode({"sub": "42"}, "another-secret", algorithm="HS256")

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_verify_access_token_non_numeric_subject(self):
        """Test that a non-numeric subject is rejected."""
        from jose import JWTError, jwt
        from prep_tracker.config import settings
        from prep_tracker.utils.auth import verify_access_token

        token = jwt.encode({"sub": "user123"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_verify_access_token_missing_subject(self):
        """Test that a token without subject is rejected."""
        from jose import JWTError, jwt
        from prep_tracker.config import settings
        from prep_tracker.utils.auth import verify_access_token

        token = jwt.encode({"foo": "bar"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(JWTError):
            verify_access_token(token)
