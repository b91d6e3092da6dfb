"""Developer portal pages: registration, login and API key management."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from payslip_app.auth import (
    DuplicateUserError,
    UserNotFoundError,
    create_api_user,
    generate_api_key,
    get_api_user_by_email,
    get_api_user_by_id,
    mask_key,
    revoke_api_key,
    verify_api_user,
)
from payslip_app.context import AppContext, get_context
from payslip_app.core.models import ApiUser
from payslip_app.core.validate import is_valid_email
from payslip_app.storage import get_payslips_by_user

from .router import TEMPLATES, _form_text

logger = logging.getLogger("payslip_app.ui")

router = APIRouter(prefix="/api", tags=["portal"])

MIN_PASSWORD_LENGTH = 8


def _current_user(request: Request, ctx: AppContext) -> ApiUser | None:
    session = ctx.api_sessions.get_session(request)
    if session is None or not session.user_id:
        return None
    return get_api_user_by_id(ctx.store, session.user_id)


def _dashboard_redirect(*, error: str | None = None, success: str | None = None) -> RedirectResponse:
    if error:
        return RedirectResponse(url=f"/api/dashboard?error={quote(error)}", status_code=303)
    if success:
        return RedirectResponse(url=f"/api/dashboard?success={quote(success)}", status_code=303)
    return RedirectResponse(url="/api/dashboard", status_code=303)


def _sign_in(ctx: AppContext, user: ApiUser) -> RedirectResponse:
    session = ctx.api_sessions.create_session(user.email, user.id)
    response = RedirectResponse(url="/api/dashboard", status_code=303)
    ctx.api_sessions.set_session_cookie(session, response)
    return response


def register_errors(name: str, email: str, password: str, confirm: str) -> str | None:
    if not name or not email or not password or not confirm:
        return "All fields are required"
    if not is_valid_email(email):
        return "Invalid email format"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if password != confirm:
        return "Passwords do not match"
    return None


@router.get("", response_class=HTMLResponse)
def portal_home(request: Request, ctx: AppContext = Depends(get_context)) -> HTMLResponse:
    return TEMPLATES.TemplateResponse(request, "api_index.html", {"user": _current_user(request, ctx)})


@router.get("/docs", response_class=HTMLResponse)
def portal_docs(request: Request, ctx: AppContext = Depends(get_context)) -> HTMLResponse:
    return TEMPLATES.TemplateResponse(
        request,
        "api_docs.html",
        {"user": _current_user(request, ctx), "base_url": ctx.settings.base_url.rstrip("/")},
    )


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    if _current_user(request, ctx) is not None:
        return RedirectResponse(url="/api/dashboard", status_code=303)
    return TEMPLATES.TemplateResponse(request, "api_register.html", {"error": None, "values": {}})


@router.post("/register")
async def register(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    form = await request.form()
    name = _form_text(form.get("name")).strip()
    email = _form_text(form.get("email")).strip()
    password = _form_text(form.get("password"))
    confirm = _form_text(form.get("confirmPassword"))
    values = {"name": name, "email": email}

    error = register_errors(name, email, password, confirm)
    if error is None:
        try:
            user = create_api_user(ctx.store, name, email, password)
        except DuplicateUserError as exc:
            error = str(exc)
    if error is not None:
        return TEMPLATES.TemplateResponse(
            request, "api_register.html", {"error": error, "values": values}, status_code=400
        )
    return _sign_in(ctx, user)


@router.get("/login", response_class=HTMLResponse)
def portal_login_page(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    if _current_user(request, ctx) is not None:
        return RedirectResponse(url="/api/dashboard", status_code=303)
    return TEMPLATES.TemplateResponse(request, "api_login.html", {"error": None, "email": ""})


@router.post("/login")
async def portal_login(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    form = await request.form()
    email = _form_text(form.get("email")).strip()
    password = _form_text(form.get("password"))
    if not email or not password:
        error = "Email and password are required"
    else:
        user = verify_api_user(ctx.store, email, password)
        if user is not None:
            return _sign_in(ctx, user)
        error = "Invalid email or password"
    return TEMPLATES.TemplateResponse(
        request, "api_login.html", {"error": error, "email": email}, status_code=400
    )


@router.get("/logout")
@router.get("/v1/logout")
def portal_logout(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    ctx.api_sessions.delete_session(request)
    response = RedirectResponse(url="/api/login", status_code=303)
    return ctx.api_sessions.clear_cookie(response)


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    error: str | None = Query(None),
    success: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
) -> Response:
    user = _current_user(request, ctx)
    if user is None:
        return RedirectResponse(url="/api/login", status_code=303)
    return TEMPLATES.TemplateResponse(
        request,
        "api_dashboard.html",
        {"user": user, "error": error, "success": success},
    )


@router.post("/dashboard")
async def dashboard_action(
    request: Request,
    action: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
) -> Response:
    user = _current_user(request, ctx)
    if user is None:
        return RedirectResponse(url="/api/login", status_code=303)
    form = await request.form()
    try:
        if action == "generate":
            key_name = _form_text(form.get("keyName")).strip()
            if not key_name:
                return _dashboard_redirect(error="Key name is required")
            generate_api_key(ctx.store, user.id, key_name)
            return _dashboard_redirect(success="API key generated successfully")
        if action == "revoke":
            key_id = _form_text(form.get("keyId")).strip()
            if not key_id:
                return _dashboard_redirect(error="Key ID is required")
            if not revoke_api_key(ctx.store, user.id, key_id):
                return _dashboard_redirect(error="API key not found")
            return _dashboard_redirect(success="API key revoked successfully")
    except UserNotFoundError as exc:
        logger.warning("Dashboard action %s failed: %s", action, exc)
        return _dashboard_redirect(error=str(exc))
    return _dashboard_redirect(error="Invalid action")


@router.get("/stats", response_class=HTMLResponse)
def stats(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    user = _current_user(request, ctx)
    if user is None:
        return RedirectResponse(url="/api/login", status_code=303)
    admin = get_api_user_by_email(ctx.store, ctx.settings.admin_email)
    keys: list[dict[str, Any]] = []
    if admin is not None:
        keys = [
            {
                "name": api_key.name,
                "masked": mask_key(api_key.key),
                "usage_count": api_key.usage_count,
                "last_used": api_key.last_used,
                "created_at": api_key.created_at,
            }
            for api_key in admin.api_keys
        ]
    context = {
        "user": user,
        "admin": admin,
        "keys": keys,
        "total_requests": sum(item["usage_count"] for item in keys),
        "total_payslips": len(get_payslips_by_user(ctx.store, None)),
    }
    return TEMPLATES.TemplateResponse(request, "api_stats.html", context)
