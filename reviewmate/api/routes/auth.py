"""FastAPI routes for signing in with Google."""

from __future__ import annotations

from html import escape

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from reviewmate.api.dependencies import get_business_profile_service
from reviewmate.api.schemas import (
    AuthorizationUrlResponse,
    OAuthExchangeRequest,
    SessionResponse,
    UserProfile,
)
from reviewmate.auth import get_auth_manager
from reviewmate.db.client import DatabaseError
from reviewmate.services.google.business_profile import (
    BusinessProfileAuthError,
    BusinessProfileService,
)


router = APIRouter(prefix="/auth/google")


def _issue_session(service: BusinessProfileService, state: str, code: str) -> SessionResponse:
    profile, _record = service.exchange_authorization_code(state, code)
    manager = get_auth_manager()
    token = manager.issue_token(profile.id, profile.email)
    return SessionResponse(
        access_token=token,
        expires_in=manager.ttl_seconds,
        user=UserProfile(**profile.model_dump()),
    )


@router.get("/authorization-url", response_model=AuthorizationUrlResponse)
def get_authorization_url(
    service: BusinessProfileService = Depends(get_business_profile_service),
) -> AuthorizationUrlResponse:
    """Generate a Google OAuth authorization URL for a new sign-in."""

    try:
        url, state = service.generate_authorization_url()
        return AuthorizationUrlResponse(authorization_url=url, state=state.encode())
    except BusinessProfileAuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/login")
def login(service: BusinessProfileService = Depends(get_business_profile_service)) -> RedirectResponse:
    """Redirect the browser straight to Google's consent screen."""

    try:
        url, _state = service.generate_authorization_url()
    except BusinessProfileAuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.post("/exchange", response_model=SessionResponse)
def exchange_authorization_code(
    payload: OAuthExchangeRequest,
    service: BusinessProfileService = Depends(get_business_profile_service),
) -> SessionResponse:
    """Exchange the Google OAuth authorization code for a session token."""

    try:
        return _issue_session(service, payload.state, payload.code)
    except BusinessProfileAuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DatabaseError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/callback")
def google_oauth_callback(
    request: Request,
    service: BusinessProfileService = Depends(get_business_profile_service),
) -> HTMLResponse:
    """
    Handle Google's OAuth redirect.

    This endpoint does not require authentication because Google redirects the
    user-agent directly. The signed state ties the callback to a login started
    by this service.
    """

    code = request.query_params.get("code")
    state = request.query_params.get("state")
    error = request.query_params.get("error")

    if error:
        content = (
            "<h1>Sign-in failed</h1>"
            f"<p>Google returned an error: <strong>{escape(error)}</strong>.</p>"
            "<p>Please close this window and try again.</p>"
        )
        return HTMLResponse(content=content, status_code=status.HTTP_400_BAD_REQUEST)

    if not code or not state:
        return HTMLResponse(
            content="<h1>Missing OAuth parameters</h1><p>Google did not supply the required code/state.</p>",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        session = _issue_session(service, state, code)
    except BusinessProfileAuthError as exc:
        return HTMLResponse(
            content=f"<h1>Sign-in failed</h1><p>{escape(str(exc))}</p>",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except DatabaseError:
        return HTMLResponse(
            content="<h1>Sign-in failed</h1><p>Your account could not be saved. Please try again later.</p>",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    display = escape(session.user.name or session.user.email or session.user.id)
    content = (
        "<h1>Login successful</h1>"
        f"<p>Signed in as <strong>{display}</strong>.</p>"
        "<p>Copy this session token into the dashboard:</p>"
        f"<pre id=\"session-token\">{escape(session.access_token)}</pre>"
    )
    return HTMLResponse(content=content, status_code=status.HTTP_200_OK)
