"""Auth API — registration, login, refresh, logout, current user.

Learn: Routes for the session lifecycle:
- POST /auth/register → create a family + its first account, start a session
- POST /auth/login    → email or phone + password → session
- POST /auth/refresh  → refresh token → new access token
- POST /auth/logout   → clear session cookies
- GET  /auth/me       → current user + family
- GET  /auth/status   → same, but never 401s (optional auth)

A "session" is an access token in the response body plus access/refresh
cookies. Register and login share the "auth" rate-limit budget.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response

from dianji.api.cookies import clear_session_cookies, set_session_cookies
from dianji.auth.dependencies import (
    REFRESH_COOKIE,
    Principal,
    get_principal,
    get_principal_optional,
)
from dianji.config import Settings
from dianji.dependencies import get_auth_service, get_settings
from dianji.errors import AuthenticationRequiredError
from dianji.middleware.rate_limit import rate_limit
from dianji.schemas.auth import (
    AccessTokenResponse,
    AuthStatusResponse,
    FamilyRead,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    SessionResponse,
    UserRead,
)
from dianji.services.auth_service import AuthResult, AuthService

router = APIRouter(prefix="/auth")


def session_response(
    result: AuthResult, response: Response, settings: Settings
) -> SessionResponse:
    """Set the session cookies and build the shared register/login/join body."""
    set_session_cookies(response, settings, result.access_token, result.refresh_token)
    return SessionResponse(
        user=UserRead.model_validate(result.account),
        family=FamilyRead.model_validate(result.family) if result.family else None,
        accessToken=result.access_token,
    )


# ─── Register ────────────────────────────────────────────


@router.post(
    "/register",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def register(
    body: RegisterRequest,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Create a family and its creator account."""
    result = await svc.register(
        email=body.email,
        password=body.password,
        name=body.name,
        family_name=body.familyName,
    )
    return session_response(result, response, settings)


# ─── Login ───────────────────────────────────────────────


@router.post(
    "/login",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def login(
    body: LoginRequest,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Login with email or phone and password."""
    result = await svc.login(body.account, body.password)
    return session_response(result, response, settings)


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request,
    response: Response,
    x_refresh_token: Optional[str] = Header(None),
    svc: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Exchange a refresh token for a new access token.

    The token is read from X-Refresh-Token, else the raw request body,
    else the refresh_token cookie. The refresh token itself is not rotated.
    """
    token = (x_refresh_token or "").strip()
    if not token:
        token = (await request.body()).decode("utf-8", errors="replace").strip()
    if not token:
        token = request.cookies.get(REFRESH_COOKIE, "")
    if not token:
        raise AuthenticationRequiredError("Missing refresh token")

    result = await svc.refresh(token)
    set_session_cookies(response, settings, result.access_token)
    return AccessTokenResponse(accessToken=result.access_token)


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout")
async def logout(response: Response, settings: Settings = Depends(get_settings)):
    """Clear the session cookies. Issued tokens stay valid until they expire."""
    clear_session_cookies(response, settings)
    return {"success": True}


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(
    principal: Principal = Depends(get_principal),
    svc: AuthService = Depends(get_auth_service),
):
    """Get the current user and their family."""
    family = await svc.current_family(principal.account)
    return MeResponse(
        user=UserRead.model_validate(principal.account),
        family=FamilyRead.model_validate(family) if family else None,
    )


@router.get("/status", response_model=AuthStatusResponse)
async def get_status(principal: Optional[Principal] = Depends(get_principal_optional)):
    """Whether the caller holds a valid session. Never rejects."""
    if principal is None:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(authenticated=True, user=UserRead.model_validate(principal.account))
