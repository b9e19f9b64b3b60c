"""Tests for bearer token authentication."""

from __future__ import annotations

import pytest

from resume_studio.auth import TokenAuthenticator, bearer_token
from resume_studio.errors import AuthError


class TestBearerToken:
    def test_extracts_token(self):
        assert bearer_token("Bearer abc123") == "abc123"
        assert bearer_token("bearer  abc123 ") == "abc123"

    def test_rejects_other_schemes(self):
        assert bearer_token("Basic abc") is None
        assert bearer_token("Bearer ") is None
        assert bearer_token("") is None
        assert bearer_token(None) is None


class TestTokenAuthenticator:
    def test_resolves_issued_token(self, profile_store):
        token = profile_store.issue_token("user-1")
        auth = TokenAuthenticator(profile_store)
        assert auth.resolve(f"Bearer {token}") == "user-1"

    def test_missing_header(self, profile_store):
        with pytest.raises(AuthError) as exc_info:
            TokenAuthenticator(profile_store).resolve(None)
        assert exc_info.value.status_code == 401
        assert exc_info.value.user_message == "Not authenticated. Please log in."

    def test_unknown_token(self, profile_store):
        with pytest.raises(AuthError):
            TokenAuthenticator(profile_store).resolve("Bearer not-a-real-token")
