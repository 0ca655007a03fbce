from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from . import urls
from .constants import META_DATA, OFFICE_ADDRESS, OFFICE_PHONE, SUPPORT_EMAIL
from .flash import ERROR, SUCCESS, clear_flash, flash, read_flash
from .formatting import format_currency, format_date, format_phone, format_price, nights_between
from .icons import resolve_icon
from .navigation import is_active
from .ui_state import state_from_request

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["price"] = format_price
templates.env.filters["currency"] = format_currency
templates.env.filters["phone"] = format_phone
templates.env.filters["date"] = format_date
templates.env.globals.update(
    urls=urls,
    meta=META_DATA,
    support_email=SUPPORT_EMAIL,
    office_address=OFFICE_ADDRESS,
    office_phone=OFFICE_PHONE,
    is_active=is_active,
    nights=nights_between,
    resolve_icon=resolve_icon,
)

# Query params that trigger a one-off action and must not survive a reload
EPHEMERAL_PARAMS = ("add-property", "add-booking", "reference", "trxref", "redirect")


def strip_query_params(path: str, query: str, names: Iterable[str] = EPHEMERAL_PARAMS) -> str:
    names = set(names)
    kept = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k not in names]
    return f"{path}?{urlencode(kept)}" if kept else path


def render(request: Request, name: str, context: Optional[dict] = None, status_code: int = 200):
    """
    TemplateResponse with the context every page shares: UI state, pending
    toast and the URL to show once ephemeral params are consumed.
    """
    message = read_flash(request)
    ctx = {
        "ui": state_from_request(request.cookies, request.query_params),
        "flash": message,
        "current_path": request.url.path,
        "clean_url": strip_query_params(request.url.path, request.url.query),
    }
    ctx.update(context or {})
    response = templates.TemplateResponse(request, name, ctx, status_code=status_code)
    if message is not None:
        clear_flash(response)
    return response


def redirect(url: str, message: Optional[str] = None, error: bool = False) -> RedirectResponse:
    """303 after a form POST, optionally carrying a toast to the next page."""
    response = RedirectResponse(url=url, status_code=303)
    if message:
        flash(response, message, ERROR if error else SUCCESS)
    return response
