"""
Every route path the site renders or redirects to, kept in one place.
"""
from urllib.parse import quote

HOME = "/"


class Public:
    PROPERTY = "/property/{property_id}"
    USER_FORGET_PASSWORD = "/auth/dashboard/forget-password"
    USER_RESET_PASSWORD = "/auth/dashboard/forget-password/reset-password"
    ADMIN_FORGET_PASSWORD = "/auth/admin/forget-password"
    ADMIN_RESET_PASSWORD = "/auth/admin/forget-password/reset-password"
    VERIFY_BOOKING_PAYMENT = "/verify-payment"


class Admin:
    DASHBOARD = "/admin"
    SIGN_IN = "/auth/admin/sign-in"
    PROPERTIES = "/admin/properties"
    PROPERTY = "/admin/properties/{property_id}"
    BOOKINGS = "/admin/bookings"
    NOTIFICATIONS = "/admin/notifications"


class User:
    DASHBOARD = "/dashboard"
    PROPERTIES = "/dashboard/properties"
    MY_PROPERTIES = "/dashboard/my-properties"
    PROPERTY = "/dashboard/properties/{property_id}"
    BOOKINGS = "/dashboard/bookings"
    VERIFY_BOOKING_PAYMENT = "/dashboard/bookings/payment/verify"
    PAYMENT = "/dashboard/payment"
    SUBSCRIPTION = "/dashboard/subscription"
    VERIFY_PAYMENT = "/dashboard/subscription/verify-payment"
    SIGN_IN = "/auth/dashboard/sign-in"
    SIGN_UP = "/auth/dashboard/sign-up"


ADMIN_PREFIX = "/admin"
DASHBOARD_PREFIX = "/dashboard"

PUBLIC_ROUTES = (Admin.SIGN_IN, User.SIGN_IN, Public.VERIFY_BOOKING_PAYMENT)


def with_redirect(sign_in_url: str, destination: str) -> str:
    """Sign-in URL that sends the user back to `destination` afterwards."""
    return f"{sign_in_url}?redirect={quote(destination, safe='')}"


def safe_redirect_target(target: str | None, default: str) -> str:
    # Only same-site absolute paths; "//host" would leave the site
    if not target or not target.startswith("/") or target.startswith("//"):
        return default
    return target
