"""
One-shot toast messages carried across a redirect in a short-lived cookie.
"""
import json
from typing import Optional
from urllib.parse import quote, unquote

from fastapi import Request, Response

from .constants import FLASH_COOKIE_NAME

SUCCESS = "success"
ERROR = "error"


def flash(response: Response, message: str, category: str = SUCCESS) -> None:
    response.set_cookie(
        key=FLASH_COOKIE_NAME,
        value=quote(json.dumps({"category": category, "message": message}), safe=""),
        path="/",
        max_age=60,
        httponly=True,
        samesite="lax",
    )


def read_flash(request: Request) -> Optional[dict]:
    raw = request.cookies.get(FLASH_COOKIE_NAME)
    if not raw:
        return None
    try:
        message = json.loads(unquote(raw))
    except json.JSONDecodeError:
        return None
    if not isinstance(message, dict) or "message" not in message:
        return None
    return message


def clear_flash(response: Response) -> None:
    response.delete_cookie(key=FLASH_COOKIE_NAME, path="/")
