"""
Per-request UI state: whether the sidebar is collapsed and what the home page
search bar holds.

State is rebuilt for every request (sidebar from its cookie, search from the
query string) and changed only through `reduce`.
"""
from dataclasses import dataclass, field, replace
from typing import Mapping, Union

from .constants import SIDEBAR_COOKIE_NAME
from .enums import PropertyTypeValue


@dataclass(frozen=True)
class HomeSearch:
    location: str = ""
    type: PropertyTypeValue = PropertyTypeValue.SHORT_LET


@dataclass(frozen=True)
class UIState:
    is_sidebar_collapsed: bool = False
    home_search: HomeSearch = field(default_factory=HomeSearch)


@dataclass(frozen=True)
class ToggleSidebar:
    is_sidebar_collapsed: bool


@dataclass(frozen=True)
class UpdateHomeSearch:
    location: str
    type: PropertyTypeValue


UIAction = Union[ToggleSidebar, UpdateHomeSearch]


def reduce(state: UIState, action: UIAction) -> UIState:
    if isinstance(action, ToggleSidebar):
        return replace(state, is_sidebar_collapsed=action.is_sidebar_collapsed)
    if isinstance(action, UpdateHomeSearch):
        return replace(state, home_search=HomeSearch(location=action.location, type=action.type))
    raise TypeError(f"Unknown UI action: {type(action).__name__}")


def parse_property_type(value: str) -> PropertyTypeValue:
    try:
        return PropertyTypeValue(value)
    except ValueError:
        return PropertyTypeValue.SHORT_LET


def state_from_request(cookies: Mapping[str, str], query: Mapping[str, str]) -> UIState:
    state = UIState()
    state = reduce(state, ToggleSidebar(is_sidebar_collapsed=cookies.get(SIDEBAR_COOKIE_NAME) == "true"))
    state = reduce(
        state,
        UpdateHomeSearch(
            location=query.get("location", "").strip(),
            type=parse_property_type(query.get("type", "")),
        ),
    )
    return state
