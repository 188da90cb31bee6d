"""Login, registration, and logout pages."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from starlette.responses import Response

from herodex.errors import AccountValidationError, PersistenceError
from herodex.schemas.account import SessionUser
from herodex.services.auth_service import AuthService
from herodex.services.dependencies import get_auth_service
from herodex.sessions import FLASH_SUCCESS, SessionState, get_current_user, get_session_state
from herodex.templating import redirect_to, render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/login")
async def login_form(
    request: Request,
    user: SessionUser | None = Depends(get_current_user),
) -> Response:
    if user is not None:
        return redirect_to("/")
    return render(request, "auth/login.html", {"identifier": ""})


@router.post("/login")
async def login(
    request: Request,
    identifier: str = Form(default="", alias="email"),
    password: str = Form(default=""),
    session: SessionState = Depends(get_session_state),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    try:
        account = await auth.authenticate(identifier, password)
    except AccountValidationError as exc:
        return render(
            request,
            "auth/login.html",
            {"error": str(exc), "identifier": identifier},
            status_code=400,
        )

    session.login(account)
    session.flash(FLASH_SUCCESS, f"Welcome back, {account.username}!")
    return redirect_to("/")


@router.get("/register")
async def register_form(
    request: Request,
    user: SessionUser | None = Depends(get_current_user),
) -> Response:
    if user is not None:
        return redirect_to("/")
    return render(request, "auth/register.html", {"username": "", "email": ""})


@router.post("/register")
async def register(
    request: Request,
    username: str = Form(default=""),
    email: str = Form(default=""),
    password: str = Form(default=""),
    confirm_password: str = Form(default="", alias="confirmPassword"),
    session: SessionState = Depends(get_session_state),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    try:
        account = await auth.register(username, email, password, confirm_password)
    except (AccountValidationError, PersistenceError) as exc:
        return render(
            request,
            "auth/register.html",
            {"error": str(exc), "username": username, "email": email},
            status_code=400,
        )

    session.login(account)
    session.flash(FLASH_SUCCESS, f"Welcome to Herodex, {account.username}!")
    return redirect_to("/")


@router.get("/logout")
async def logout(session: SessionState = Depends(get_session_state)) -> Response:
    user = session.user
    session.logout()
    if user is not None:
        logger.info("User %s logged out", user.id)
    return redirect_to("/")


__all__ = ["router"]
