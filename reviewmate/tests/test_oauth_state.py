from datetime import datetime, timedelta, timezone

import jwt
import pytest

from reviewmate.services.google.business_profile import (
    BusinessProfileAuthError,
    BusinessProfileService,
    OAuthState,
)


def test_oauth_state_round_trip() -> None:
    state = OAuthState.issue()
    encoded = state.encode()

    decoded = OAuthState.decode(encoded)
    assert decoded.nonce == state.nonce
    assert abs((decoded.expires_at - state.expires_at).total_seconds()) < 1


def test_oauth_state_invalid_payload() -> None:
    with pytest.raises(BusinessProfileAuthError):
        OAuthState.decode("aW52YWxpZA")


def test_oauth_state_signed_with_other_secret_is_rejected() -> None:
    encoded = OAuthState.issue().encode("another-secret-entirely")

    with pytest.raises(BusinessProfileAuthError):
        OAuthState.decode(encoded)


def test_oauth_state_expired() -> None:
    state = OAuthState(nonce="abc", expires_at=datetime.now(timezone.utc) - timedelta(seconds=5))

    with pytest.raises(BusinessProfileAuthError, match="expired"):
        OAuthState.decode(state.encode())


def test_session_token_is_not_accepted_as_state() -> None:
    forged = jwt.encode(
        {"n": "abc", "p": "session", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "test-session-secret-with-enough-length",
        algorithm="HS256",
    )

    with pytest.raises(BusinessProfileAuthError):
        OAuthState.decode(forged)


def test_authorization_url_requests_offline_access() -> None:
    url, state = BusinessProfileService().generate_authorization_url()

    assert url.startswith("https://accounts.google.com/o/oauth2/auth")
    assert "access_type=offline" in url
    assert "prompt=consent" in url
    assert "business.manage" in url
    assert state.nonce


def test_exchange_requires_code() -> None:
    with pytest.raises(BusinessProfileAuthError):
        BusinessProfileService().exchange_authorization_code(OAuthState.issue().encode(), "")
