import logging
import time

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status

from .. import crud, urls
from ..auth import COOKIE_NAMES, SIGN_IN_URLS, create_cookie, log_out
from ..backend import BackendClient, get_backend
from ..constants import OTP_LENGTH, OTP_RESEND_COOLDOWN_SECONDS
from ..enums import Role
from ..exceptions import BackendError, InvalidTokenError
from ..limits import otp_limiter, password_reset_limiter, sign_in_limiter, sign_up_limiter
from ..templates import redirect, render
from ..validation import (
    password_strength,
    resend_wait_seconds,
    strength_label,
    validate_otp,
    validate_reset_password,
    validate_sign_in,
    validate_sign_up,
)

logger = logging.getLogger("edgehomes.auth")

router = APIRouter(prefix="/auth", tags=["Auth"])

DASHBOARDS = {Role.ADMIN: urls.Admin.DASHBOARD, Role.USER: urls.User.DASHBOARD}
FORGET_PASSWORD_URLS = {Role.ADMIN: urls.Public.ADMIN_FORGET_PASSWORD, Role.USER: urls.Public.USER_FORGET_PASSWORD}
RESET_PASSWORD_URLS = {Role.ADMIN: urls.Public.ADMIN_RESET_PASSWORD, Role.USER: urls.Public.USER_RESET_PASSWORD}

# Path segment used for each role under /auth
SEGMENTS = {Role.ADMIN: "admin", Role.USER: "dashboard"}


def _role(segment: str) -> Role:
    for role, name in SEGMENTS.items():
        if name == segment:
            return role
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")


# --- Sign in ---

def _render_sign_in(request: Request, role: Role, email: str = "", errors=None, redirect_to: str = "", status_code=200):
    return render(
        request,
        "auth/sign_in.html",
        {
            "role": role.value,
            "email": email,
            "errors": errors or [],
            "redirect_to": redirect_to,
            "forget_password_url": FORGET_PASSWORD_URLS[role],
        },
        status_code=status_code,
    )


@router.get("/{segment}/sign-in")
async def sign_in_page(request: Request, segment: str, redirect_to: str = Query("", alias="redirect")):
    return _render_sign_in(request, _role(segment), redirect_to=redirect_to)


@router.post("/{segment}/sign-in", dependencies=[Depends(sign_in_limiter)])
async def sign_in(
        request: Request,
        segment: str,
        email: str = Form(""),
        password: str = Form(""),
        redirect_to: str = Form("", alias="redirect"),
        backend: BackendClient = Depends(get_backend),
):
    role = _role(segment)
    email = email.strip()

    errors = validate_sign_in(email, password)
    if errors:
        return _render_sign_in(request, role, email, errors, redirect_to, status_code=422)

    try:
        result = await crud.sign_in(backend, email, password)
    except BackendError as e:
        logger.info(f"Sign-in failed for {role.value}: {e.message}")
        return _render_sign_in(request, role, email, e.messages or ["Invalid email or password"], redirect_to, status_code=400)

    if role == Role.ADMIN and not result.user.isAdmin:
        return _render_sign_in(
            request, role, email, ["This account does not have admin access"], redirect_to, status_code=403
        )

    target = urls.safe_redirect_target(redirect_to, DASHBOARDS[role])
    response = redirect(target, f"Welcome back {result.user.name}")
    try:
        create_cookie(response, COOKIE_NAMES[role], result.accessToken)
    except InvalidTokenError as e:
        logger.error(f"Backend issued an unusable token: {e}")
        return _render_sign_in(request, role, email, [str(e)], redirect_to, status_code=502)

    logger.info(f"{role.value} {result.user.id or email} signed in")
    return response


@router.post("/{segment}/logout")
async def logout(segment: str):
    role = _role(segment)
    response = redirect(SIGN_IN_URLS[role], "Logged out successfully")
    log_out(response, role)
    return response


# --- Sign up ---

@router.get("/dashboard/sign-up")
async def sign_up_page(request: Request):
    return render(request, "auth/sign_up.html", {"form": {}, "errors": []})


@router.post("/dashboard/sign-up", dependencies=[Depends(sign_up_limiter)])
async def sign_up(
        request: Request,
        name: str = Form(""),
        email: str = Form(""),
        phone: str = Form(""),
        password: str = Form(""),
        confirm_password: str = Form(""),
        backend: BackendClient = Depends(get_backend),
):
    form = {"name": name.strip(), "email": email.strip(), "phone": phone.strip()}
    errors = validate_sign_up(form["name"], form["email"], form["phone"], password, confirm_password)
    if errors:
        return render(request, "auth/sign_up.html", {"form": form, "errors": errors}, status_code=422)

    try:
        await crud.register(backend, form["name"], form["email"], form["phone"], password)
    except BackendError as e:
        return render(request, "auth/sign_up.html", {"form": form, "errors": e.messages}, status_code=400)

    logger.info(f"New account registered for {form['email']}")
    return redirect(urls.User.SIGN_IN, "Account created successfully. Please sign in.")


# --- Forgot password, OTP and reset ---

def _render_forgot(request: Request, role: Role, **context):
    status_code = context.pop("status_code", 200)
    ctx = {
        "role": role.value,
        "segment": SEGMENTS[role],
        "step": "email",
        "email": "",
        "errors": [],
        "otp_length": OTP_LENGTH,
        "resend_wait": 0,
    }
    ctx.update(context)
    return render(request, "auth/forgot_password.html", ctx, status_code=status_code)


@router.get("/{segment}/forget-password")
async def forgot_password_page(request: Request, segment: str):
    return _render_forgot(request, _role(segment))


@router.post("/{segment}/forget-password", dependencies=[Depends(password_reset_limiter)])
async def forgot_password(
        request: Request,
        segment: str,
        email: str = Form(""),
        sent_at: float = Form(0),
        backend: BackendClient = Depends(get_backend),
):
    """Sends (or re-sends) the reset code, then shows the code entry step."""
    role = _role(segment)
    email = email.strip()
    now = time.time()

    if sent_at:
        wait = resend_wait_seconds(sent_at, now, OTP_RESEND_COOLDOWN_SECONDS)
        if wait:
            return _render_forgot(
                request, role, step="otp", email=email, sent_at=sent_at, resend_wait=wait,
                errors=[f"Please wait {wait} seconds before requesting a new code"], status_code=429,
            )

    errors = validate_sign_in(email, "-")
    if errors:
        return _render_forgot(request, role, email=email, errors=errors, status_code=422)

    try:
        message = await crud.forgot_password(backend, email)
    except BackendError as e:
        return _render_forgot(request, role, email=email, errors=e.messages, status_code=400)

    return _render_forgot(
        request, role, step="otp", email=email, sent_at=now,
        resend_wait=OTP_RESEND_COOLDOWN_SECONDS, notice=message,
    )


@router.post("/{segment}/forget-password/verify", dependencies=[Depends(otp_limiter)])
async def verify_code(
        request: Request,
        segment: str,
        email: str = Form(""),
        code: str = Form(""),
        sent_at: float = Form(0),
        backend: BackendClient = Depends(get_backend),
):
    role = _role(segment)
    code = code.strip()
    wait = resend_wait_seconds(sent_at, time.time(), OTP_RESEND_COOLDOWN_SECONDS) if sent_at else 0

    errors = validate_otp(code)
    if errors:
        return _render_forgot(
            request, role, step="otp", email=email, sent_at=sent_at, resend_wait=wait, errors=errors, status_code=422
        )

    try:
        result = await crud.verify_otp(backend, email, code)
    except BackendError as e:
        return _render_forgot(
            request, role, step="otp", email=email, sent_at=sent_at, resend_wait=wait,
            errors=e.messages or ["Invalid or expired code"], status_code=400,
        )

    reset_token = result.get("reset_token")
    if not reset_token:
        return _render_forgot(
            request, role, step="otp", email=email, sent_at=sent_at, resend_wait=wait,
            errors=["Invalid or expired code"], status_code=400,
        )
    return redirect(f"{RESET_PASSWORD_URLS[role]}?token={reset_token}", result.get("message") or "Code verified successfully")


def _render_reset(request: Request, role: Role, token: str, errors=None, strength: int = 0, status_code=200):
    return render(
        request,
        "auth/reset_password.html",
        {
            "role": role.value,
            "token": token,
            "errors": errors or [],
            "strength": strength,
            "strength_label": strength_label(strength),
            "forget_password_url": FORGET_PASSWORD_URLS[role],
        },
        status_code=status_code,
    )


@router.get("/{segment}/forget-password/reset-password")
async def reset_password_page(
        request: Request,
        segment: str,
        token: str = "",
        backend: BackendClient = Depends(get_backend),
):
    role = _role(segment)
    if not token:
        return redirect(FORGET_PASSWORD_URLS[role])
    if not await crud.validate_reset_token(backend, token):
        return render(
            request,
            "auth/reset_link_invalid.html",
            {"forget_password_url": FORGET_PASSWORD_URLS[role]},
            status_code=400,
        )
    return _render_reset(request, role, token)


@router.post("/{segment}/forget-password/reset-password", dependencies=[Depends(password_reset_limiter)])
async def reset_password(
        request: Request,
        segment: str,
        token: str = Form(""),
        password: str = Form(""),
        confirm_password: str = Form(""),
        backend: BackendClient = Depends(get_backend),
):
    role = _role(segment)
    strength = password_strength(password, role)

    errors = validate_reset_password(password, confirm_password, role)
    if errors:
        return _render_reset(request, role, token, errors, strength, status_code=422)

    try:
        await crud.reset_password(backend, token, password)
    except BackendError as e:
        message = e.message
        if e.status_code in (400, 401) and "token" in message.lower():
            message = "Invalid reset token. Please request a new reset link."
        return _render_reset(request, role, token, [message], strength, status_code=400)

    success = "Admin password reset successful!" if role == Role.ADMIN else "Password reset successful!"
    return redirect(SIGN_IN_URLS[role], success)


@router.post("/{segment}/password-strength")
async def strength(segment: str, password: str = Form("")):
    """Live strength meter feed for the reset form."""
    role = _role(segment)
    score = password_strength(password, role)
    return {"strength": score, "label": strength_label(score)}
