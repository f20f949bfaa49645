"""Google Business Profile integration: sign-in, locations, reviews and replies."""

from __future__ import annotations

import logging
import os
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import jwt
import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import BaseModel, Field

from reviewmate.automation.errors import ExternalFetchFailure, PublishFailure, QuotaExceeded
from reviewmate.automation.models import Review
from reviewmate.config import CONFIG
from reviewmate.db.client import get_database_client
from reviewmate.db.models import UserRecord

logger = logging.getLogger(__name__)


class BusinessProfileAuthError(RuntimeError):
    """Raised when the Google OAuth configuration or callback is invalid."""


class BusinessProfileCredentialsError(RuntimeError):
    """Raised when stored Google credentials are missing or cannot be refreshed."""


DEFAULT_SCOPES: Tuple[str, ...] = (
    "https://www.googleapis.com/auth/business.manage",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "openid",
)

MY_BUSINESS_V4_BASE_URL = "https://mybusiness.googleapis.com/v4"
LOCATION_READ_MASK = "name,title,storeCode"
MAX_REPLY_BYTES = 4096
REQUEST_TIMEOUT_SECONDS = 30
OAUTH_STATE_TTL_SECONDS = 600
OAUTH_STATE_PURPOSE = "google_login"

_STAR_RATINGS: Dict[str, int] = {
    "ONE": 1,
    "TWO": 2,
    "THREE": 3,
    "FOUR": 4,
    "FIVE": 5,
}

_FRACTION_RE = re.compile(r"(\.\d{1,6})\d*")


@dataclass(frozen=True, slots=True)
class BusinessProfileConfig:
    """Static OAuth configuration loaded from environment variables."""

    client_id: str
    client_secret: str
    redirect_uri: str
    token_uri: str = "https://oauth2.googleapis.com/token"
    authorization_uri: str = "https://accounts.google.com/o/oauth2/auth"
    scopes: Tuple[str, ...] = field(default=DEFAULT_SCOPES)

    @classmethod
    def from_env(cls) -> "BusinessProfileConfig":
        """Load OAuth configuration from environment variables."""

        client_id = CONFIG.google_client_id
        client_secret = CONFIG.google_client_secret
        redirect_uri = CONFIG.google_redirect_uri

        if not client_id or not client_secret or not redirect_uri:
            raise BusinessProfileAuthError(
                "Google OAuth environment variables are not fully configured. "
                "Please set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, and GOOGLE_OAUTH_REDIRECT_URI.",
            )

        raw_scopes = os.getenv("GOOGLE_OAUTH_SCOPES")
        scopes: Tuple[str, ...]
        if raw_scopes:
            parsed = tuple(scope.strip() for scope in raw_scopes.split(",") if scope.strip())
            scopes = parsed or DEFAULT_SCOPES
        else:
            scopes = DEFAULT_SCOPES

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scopes=scopes,
        )

    def to_google_client_config(self) -> Dict[str, Dict[str, Any]]:
        """Return the structure expected by google-auth for the OAuth client."""

        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.authorization_uri,
                "token_uri": self.token_uri,
                "redirect_uris": [self.redirect_uri],
            },
        }


def _state_secret(secret: Optional[str]) -> str:
    value = secret or CONFIG.session_secret
    if not value:
        raise BusinessProfileAuthError("SESSION_SECRET is required to sign OAuth state.")
    return value


@dataclass(frozen=True, slots=True)
class OAuthState:
    """
    Signed state passed through the Google login flow.

    No account exists before the first login, so instead of storing a pending
    nonce the state is a short-lived HS256 token that the callback verifies.
    """

    nonce: str
    expires_at: datetime

    @classmethod
    def issue(cls, ttl_seconds: int = OAUTH_STATE_TTL_SECONDS) -> "OAuthState":
        """Create a new randomised OAuth state."""

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        return cls(nonce=secrets.token_urlsafe(24), expires_at=expires_at)

    def encode(self, secret: Optional[str] = None) -> str:
        payload = {"n": self.nonce, "p": OAUTH_STATE_PURPOSE, "exp": self.expires_at}
        return jwt.encode(payload, _state_secret(secret), algorithm="HS256")

    @classmethod
    def decode(cls, value: str, secret: Optional[str] = None) -> "OAuthState":
        """Verify and decode a state string produced by :meth:`encode`."""

        if not value:
            raise BusinessProfileAuthError("Missing OAuth state parameter.")

        try:
            payload = jwt.decode(value, _state_secret(secret), algorithms=["HS256"])
        except jwt.ExpiredSignatureError as exc:
            raise BusinessProfileAuthError("OAuth state has expired. Please sign in again.") from exc
        except jwt.InvalidTokenError as exc:
            raise BusinessProfileAuthError("Malformed OAuth state value.") from exc

        nonce = payload.get("n")
        if not nonce or payload.get("p") != OAUTH_STATE_PURPOSE:
            raise BusinessProfileAuthError("Malformed OAuth state value.")

        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        return cls(nonce=str(nonce), expires_at=expires_at)


class GoogleProfile(BaseModel):
    """Account profile returned by Google after sign-in."""

    id: str = Field(..., description="Stable Google account identifier.")
    email: str = Field(default="", description="Primary email address of the account.")
    name: str = Field(default="", description="Display name of the account.")
    picture: Optional[str] = Field(default=None, description="Avatar URL.")


class Location(BaseModel):
    """A Business Profile location the account can manage."""

    id: str = Field(..., description="Full resource name, accounts/{account}/locations/{location}.")
    title: str = Field(default="", description="Business name shown on Google.")
    store_code: Optional[str] = Field(default=None, description="Merchant supplied store code.")
    account: str = Field(..., description="Parent account resource name.")


def _parse_google_timestamp(value: Any) -> Optional[datetime]:
    """Parse RFC 3339 timestamps such as ``2024-05-01T10:00:00.123456789Z``."""

    if not value or not isinstance(value, str):
        return None
    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # google-auth compares expiry against a naive UTC clock
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_retry_after(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return max(0.0, float(str(value).strip()))
    except ValueError:
        return None


def parse_review(payload: Mapping[str, Any]) -> Optional[Review]:
    """Convert one v4 review resource into a :class:`Review`; None when unusable."""

    review_id = payload.get("name")
    created_at = _parse_google_timestamp(payload.get("createTime")) or _parse_google_timestamp(
        payload.get("updateTime")
    )
    if not review_id or created_at is None:
        return None

    reviewer = payload.get("reviewer") or {}
    reply = payload.get("reviewReply") or {}
    comment = payload.get("comment")

    return Review(
        review_id=str(review_id),
        created_at=created_at,
        star_rating=_STAR_RATINGS.get(str(payload.get("starRating") or "").upper(), 0),
        comment=comment if isinstance(comment, str) and comment.strip() else None,
        reviewer_name=(reviewer.get("displayName") or "").strip() or "Customer",
        existing_reply=(reply.get("comment") or None),
    )


def truncate_reply(text: str, limit: int = MAX_REPLY_BYTES) -> str:
    """Trim a reply to the API's byte limit without splitting a character."""

    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    return encoded[:limit].decode("utf-8", errors="ignore").rstrip()


def _is_quota_response(response: requests.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    error = body.get("error") if isinstance(body, dict) else None
    return isinstance(error, dict) and error.get("status") == "RESOURCE_EXHAUSTED"


def _http_error_is_quota(exc: HttpError) -> bool:
    status = getattr(exc.resp, "status", None)
    return status == 429 or "RESOURCE_EXHAUSTED" in str(exc)


class BusinessProfileService:
    """High-level helper that manages Google sign-in and Business Profile calls."""

    def __init__(self, config: Optional[BusinessProfileConfig] = None, db: Optional[Any] = None) -> None:
        self._config = config
        self._db = db

    # ------------------------------------------------------------------
    # OAuth helpers
    # ------------------------------------------------------------------
    def _config_or_raise(self) -> BusinessProfileConfig:
        if self._config is None:
            self._config = BusinessProfileConfig.from_env()
        return self._config

    def _database(self):
        if self._db is None:
            self._db = get_database_client()
        return self._db

    def _flow(self, state: str) -> Flow:
        config = self._config_or_raise()
        flow = Flow.from_client_config(
            config.to_google_client_config(),
            scopes=list(config.scopes),
            state=state,
        )
        flow.redirect_uri = config.redirect_uri
        return flow

    def generate_authorization_url(self) -> Tuple[str, OAuthState]:
        """
        Create a Google OAuth authorization URL for a new sign-in.

        Returns the URL and the state object the callback must present.
        """

        state = OAuthState.issue()
        flow = self._flow(state.encode())
        authorization_url, _ = flow.authorization_url(
            access_type="offline",
            include_granted_scopes="true",
            prompt="consent",
        )
        return authorization_url, state

    def exchange_authorization_code(self, state_value: str, code: str) -> Tuple[GoogleProfile, UserRecord]:
        """
        Exchange the authorization code for tokens and store the account.

        The user is created on first login; later logins refresh the stored
        profile and tokens.
        """

        if not code:
            raise BusinessProfileAuthError("Missing authorization code.")

        OAuthState.decode(state_value)

        # Google may report the previously granted scopes alongside the requested ones.
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

        flow = self._flow(state_value)
        try:
            flow.fetch_token(code=code)
        except Exception as exc:
            raise BusinessProfileAuthError(f"Google rejected the authorization code: {exc}") from exc

        credentials = flow.credentials
        profile = self._fetch_profile(credentials)
        if not credentials.refresh_token:
            logger.warning("Google returned no refresh token for account %s", profile.id)

        record = self._database().upsert_user_from_login(
            google_id=profile.id,
            email=profile.email,
            name=profile.name,
            picture=profile.picture,
            access_token=credentials.token or "",
            refresh_token=credentials.refresh_token,
            token_expiry=credentials.expiry,
        )
        return profile, record

    def _fetch_profile(self, credentials: Credentials) -> GoogleProfile:
        service = build("oauth2", "v2", credentials=credentials, cache_discovery=False)
        try:
            response = service.userinfo().get().execute()
        except HttpError as exc:  # pragma: no cover - depends on external API
            raise BusinessProfileAuthError(f"Could not load the Google profile: {exc}") from exc

        account_id = response.get("id")
        if not account_id:
            raise BusinessProfileAuthError("Google profile did not include an account id.")
        return GoogleProfile(
            id=str(account_id),
            email=response.get("email", ""),
            name=response.get("name", ""),
            picture=response.get("picture"),
        )

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    def build_credentials(self, user: UserRecord) -> Credentials:
        """Build fresh per-run credentials for a user, refreshing when expired."""

        config = self._config_or_raise()
        if not user.refresh_token:
            raise BusinessProfileCredentialsError(
                "No Google refresh token stored for this user. Please sign in again.",
            )

        credentials = Credentials(
            token=user.access_token or None,
            refresh_token=user.refresh_token,
            token_uri=config.token_uri,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=list(config.scopes),
        )
        credentials.expiry = _naive_utc(user.token_expiry)

        if not credentials.token or credentials.expired:
            try:
                credentials.refresh(Request())
            except RefreshError as exc:
                raise BusinessProfileCredentialsError(
                    f"Google refused to refresh the stored credentials: {exc}"
                ) from exc
            except TransportError as exc:
                raise ExternalFetchFailure(f"Could not reach Google to refresh credentials: {exc}") from exc
            self._store_credentials(user, credentials)

        if not credentials.valid:
            raise BusinessProfileCredentialsError("Stored Google credentials are invalid after refresh.")

        return credentials

    def store_refreshed_credentials(self, user: UserRecord, credentials: Credentials) -> bool:
        """
        Persist a token that AuthorizedSession refreshed during the run.

        Returns True when a new token was written.
        """

        if not credentials.token or credentials.token == user.access_token:
            return False
        self._store_credentials(user, credentials)
        return True

    def _store_credentials(self, user: UserRecord, credentials: Credentials) -> None:
        expiry = credentials.expiry
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        user.access_token = credentials.token or ""
        user.token_expiry = expiry
        self._database().update_user_tokens(
            user.google_id,
            access_token=credentials.token or "",
            token_expiry=expiry,
            refresh_token=credentials.refresh_token,
        )

    # ------------------------------------------------------------------
    # Location catalog
    # ------------------------------------------------------------------
    def _build_service(self, name: str, version: str, credentials: Credentials):
        return build(name, version, credentials=credentials, cache_discovery=False)

    def list_accounts(self, credentials: Credentials) -> List[str]:
        service = self._build_service("mybusinessaccountmanagement", "v1", credentials)
        accounts: List[str] = []
        page_token: Optional[str] = None
        while True:
            try:
                response = service.accounts().list(pageToken=page_token).execute()
            except HttpError as exc:
                if _http_error_is_quota(exc):
                    raise QuotaExceeded(f"Quota exceeded while listing accounts: {exc}") from exc
                raise ExternalFetchFailure(f"Google API error while listing accounts: {exc}") from exc

            for account in response.get("accounts") or []:
                name = account.get("name")
                if name:
                    accounts.append(name)
            page_token = response.get("nextPageToken")
            if not page_token:
                return accounts

    def list_locations(self, credentials: Credentials) -> List[Location]:
        """Return every location across every account the user can manage."""

        service = self._build_service("mybusinessbusinessinformation", "v1", credentials)
        locations: List[Location] = []
        for account in self.list_accounts(credentials):
            page_token: Optional[str] = None
            while True:
                try:
                    response = (
                        service.accounts()
                        .locations()
                        .list(
                            parent=account,
                            readMask=LOCATION_READ_MASK,
                            pageSize=100,
                            pageToken=page_token,
                        )
                        .execute()
                    )
                except HttpError as exc:
                    if _http_error_is_quota(exc):
                        raise QuotaExceeded(f"Quota exceeded while listing locations: {exc}") from exc
                    raise ExternalFetchFailure(
                        f"Google API error while listing locations for {account}: {exc}"
                    ) from exc

                for item in response.get("locations") or []:
                    name = item.get("name") or ""
                    if not name:
                        continue
                    location_id = name if name.startswith("accounts/") else f"{account}/{name}"
                    locations.append(
                        Location(
                            id=location_id,
                            title=item.get("title", ""),
                            store_code=item.get("storeCode"),
                            account=account,
                        )
                    )
                page_token = response.get("nextPageToken")
                if not page_token:
                    break
        return locations

    # ------------------------------------------------------------------
    # Reviews and replies (My Business v4 REST)
    # ------------------------------------------------------------------
    def list_reviews(
        self,
        credentials: Credentials,
        location_id: str,
        *,
        page_size: Optional[int] = None,
    ) -> List[Review]:
        """Fetch the newest page of reviews for a location, newest first."""

        size = max(1, min(int(page_size or CONFIG.review_page_size), 50))
        url = f"{MY_BUSINESS_V4_BASE_URL}/{location_id}/reviews"
        try:
            with AuthorizedSession(credentials) as session:
                response = session.get(
                    url,
                    params={"pageSize": size, "orderBy": "updateTime desc"},
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
        except requests.RequestException as exc:
            raise ExternalFetchFailure(f"Request for reviews of {location_id} failed: {exc}") from exc

        if _is_quota_response(response):
            raise QuotaExceeded(
                f"Quota exceeded while fetching reviews for {location_id}",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.status_code >= 400:
            raise ExternalFetchFailure(
                f"Google API error {response.status_code} while fetching reviews for {location_id}: "
                f"{response.text[:300]}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ExternalFetchFailure(f"Invalid reviews payload for {location_id}") from exc

        reviews: List[Review] = []
        for item in body.get("reviews") or []:
            review = parse_review(item)
            if review is None:
                logger.warning("Ignoring malformed review payload at %s: %s", location_id, item.get("name"))
                continue
            reviews.append(review)
        return reviews

    def publish_reply(self, credentials: Credentials, review_id: str, text: str) -> Dict[str, Any]:
        """Create or overwrite the owner reply on a review."""

        url = f"{MY_BUSINESS_V4_BASE_URL}/{review_id}/reply"
        try:
            with AuthorizedSession(credentials) as session:
                response = session.put(
                    url,
                    json={"comment": truncate_reply(text)},
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
        except requests.RequestException as exc:
            raise PublishFailure(f"Request to reply to {review_id} failed: {exc}") from exc

        if _is_quota_response(response):
            raise QuotaExceeded(
                f"Quota exceeded while replying to {review_id}",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.status_code >= 400:
            raise PublishFailure(
                f"Google API error {response.status_code} while replying to {review_id}: {response.text[:300]}"
            )

        try:
            return response.json()
        except ValueError:
            return {}


__all__ = [
    "BusinessProfileAuthError",
    "BusinessProfileConfig",
    "BusinessProfileCredentialsError",
    "BusinessProfileService",
    "GoogleProfile",
    "Location",
    "OAuthState",
    "parse_review",
    "truncate_reply",
]
