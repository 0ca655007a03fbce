from enum import Enum
from typing import Optional


class Icon(str, Enum):
    """Icon names understood by the templates' icon macro (lucide names)."""
    HOME = "home"
    CALENDAR = "calendar"
    CREDIT_CARD = "credit-card"
    PLUS = "plus"
    BUILDING = "building"
    BELL = "bell"
    MESSAGE_SQUARE = "message-square"
    SEARCH = "search"
    CROWN = "crown"
    SETTINGS = "settings"
    LOG_OUT = "log-out"


DEFAULT_ICON = Icon.HOME

# Keys the backend sends in dashboard quick actions
_BACKEND_KEYS = {
    "Home": Icon.HOME,
    "Calendar": Icon.CALENDAR,
    "CreditCard": Icon.CREDIT_CARD,
    "Plus": Icon.PLUS,
    "Building": Icon.BUILDING,
    "Bell": Icon.BELL,
    "MessageSquare": Icon.MESSAGE_SQUARE,
}


def resolve_icon(key: Optional[str]) -> Icon:
    """Maps a backend icon key to an Icon; unknown or missing keys fall back to DEFAULT_ICON."""
    if not key:
        return DEFAULT_ICON
    if key in _BACKEND_KEYS:
        return _BACKEND_KEYS[key]
    try:
        return Icon(key)
    except ValueError:
        return DEFAULT_ICON
