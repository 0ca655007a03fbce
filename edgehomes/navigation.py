from dataclasses import dataclass, field
from typing import List, Tuple

from . import urls
from .icons import Icon


@dataclass(frozen=True)
class NavItem:
    name: str
    href: str
    icon: Icon
    exact: bool = False
    sub_routes: Tuple[str, ...] = field(default_factory=tuple)


def _matches(path: str, route: str) -> bool:
    return path == route or path.startswith(route + "/")


def is_active(path: str, item: NavItem) -> bool:
    if item.exact:
        return path == item.href
    if _matches(path, item.href):
        return True
    return any(_matches(path, sub) for sub in item.sub_routes)


ADMIN_NAV: List[NavItem] = [
    NavItem("Overview", urls.Admin.DASHBOARD, Icon.HOME, exact=True),
    NavItem("Properties", urls.Admin.PROPERTIES, Icon.BUILDING),
    NavItem("Bookings", urls.Admin.BOOKINGS, Icon.CALENDAR),
    NavItem("Notifications", urls.Admin.NOTIFICATIONS, Icon.BELL),
]

USER_NAV: List[NavItem] = [
    NavItem("Dashboard", urls.User.DASHBOARD, Icon.HOME, exact=True),
    NavItem("Find Properties", urls.User.PROPERTIES, Icon.SEARCH),
    NavItem("My Properties", urls.User.MY_PROPERTIES, Icon.BUILDING),
    NavItem("My Bookings", urls.User.BOOKINGS, Icon.CALENDAR),
    NavItem("Subscription plan", urls.User.SUBSCRIPTION, Icon.CROWN),
    NavItem("Payments", urls.User.PAYMENT, Icon.CREDIT_CARD),
]
