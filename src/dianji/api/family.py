"""Family API — overview, invite links, joining.

Learn:
- GET  /family               → family + members (authenticated)
- GET  /family/invite        → current invite code/link, regenerated when
                               expired (family creator only)
- GET  /family/invite/{code} → public preview of a code, rate-limited to
                               slow down code enumeration
- POST /family/join          → parent joins with code + phone + password
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from dianji.api.auth import session_response
from dianji.auth.dependencies import Principal, get_principal, require_primary
from dianji.config import Settings
from dianji.dependencies import get_auth_service, get_settings
from dianji.middleware.rate_limit import rate_limit
from dianji.schemas.auth import (
    FamilyOverview,
    FamilyRead,
    InvitePreviewResponse,
    InviteResponse,
    JoinRequest,
    MemberRead,
    SessionResponse,
)
from dianji.services.auth_service import AuthService

router = APIRouter(prefix="/family")


@router.get("", response_model=FamilyOverview)
async def get_family(
    principal: Principal = Depends(get_principal),
    svc: AuthService = Depends(get_auth_service),
):
    """The caller's family and its members."""
    family, members = await svc.family_overview(principal.account)
    return FamilyOverview(
        family=FamilyRead.model_validate(family),
        members=[MemberRead.model_validate(m) for m in members],
    )


# ─── Invites ────────────────────────────────────────────


@router.get("/invite", response_model=InviteResponse)
async def get_invite(
    principal: Principal = Depends(require_primary),
    svc: AuthService = Depends(get_auth_service),
):
    """Current invite code and shareable link (regenerated if expired)."""
    invite = await svc.get_invite(principal.account)
    return InviteResponse(
        invite_code=invite.code,
        invite_url=invite.url,
        expires_at=invite.expires_at,
    )


@router.get(
    "/invite/{code}",
    response_model=InvitePreviewResponse,
    dependencies=[Depends(rate_limit("invite"))],
)
async def validate_invite(code: str, svc: AuthService = Depends(get_auth_service)):
    """Preview an invite code before joining. Only the family name is revealed."""
    preview = await svc.validate_invite(code.strip().upper())
    if not preview.valid:
        return JSONResponse(
            status_code=400,
            content={
                "valid": False,
                "error": preview.error.message,
                "code": preview.error.code,
            },
        )
    return InvitePreviewResponse(valid=True, family_name=preview.family_name)


# ─── Join ───────────────────────────────────────────────


@router.post(
    "/join",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def join_family(
    body: JoinRequest,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Join a family with an invite code."""
    result = await svc.join(
        invite_code=body.invite_code,
        phone=body.phone,
        password=body.password,
        name=body.name,
    )
    return session_response(result, response, settings)
