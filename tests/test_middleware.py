from urllib.parse import parse_qs, urlparse

from edgehomes import urls
from edgehomes.constants import ADMIN_COOKIE_NAME, USER_COOKIE_NAME
from edgehomes.middleware import resolve_guard_redirect


def _redirect_param(target):
    return parse_qs(urlparse(target).query)["redirect"][0]


def test_admin_route_without_cookie_goes_to_admin_sign_in():
    target = resolve_guard_redirect("/admin/properties", "page=2", {})

    assert target.startswith(urls.Admin.SIGN_IN)
    assert _redirect_param(target) == "/admin/properties?page=2"


def test_dashboard_route_without_cookie_goes_to_user_sign_in():
    target = resolve_guard_redirect("/dashboard", "", {})

    assert target.startswith(urls.User.SIGN_IN)
    assert _redirect_param(target) == "/dashboard"


def test_expired_token_is_treated_as_missing(make_token):
    cookies = {USER_COOKIE_NAME: make_token(expires_in=-60)}
    target = resolve_guard_redirect("/dashboard/bookings", "", cookies)

    assert target.startswith(urls.User.SIGN_IN)


def test_non_admin_on_admin_route_goes_home(make_token):
    cookies = {ADMIN_COOKIE_NAME: make_token(is_admin=False)}
    assert resolve_guard_redirect("/admin", "", cookies) == urls.HOME


def test_admin_with_valid_token_passes(make_token):
    cookies = {ADMIN_COOKIE_NAME: make_token(is_admin=True)}
    assert resolve_guard_redirect("/admin/bookings", "", cookies) is None


def test_user_cookie_does_not_open_admin_routes(make_token):
    cookies = {USER_COOKIE_NAME: make_token(is_admin=True)}
    assert resolve_guard_redirect("/admin", "", cookies).startswith(urls.Admin.SIGN_IN)


def test_public_pages_are_never_redirected():
    assert resolve_guard_redirect("/", "", {}) is None
    assert resolve_guard_redirect("/property/abc", "", {}) is None
    assert resolve_guard_redirect(urls.Public.VERIFY_BOOKING_PAYMENT, "reference=x", {}) is None


def test_prefix_must_match_a_whole_segment():
    assert resolve_guard_redirect("/administrator", "", {}) is None
    assert resolve_guard_redirect("/dashboards", "", {}) is None


def test_guard_middleware_redirects_with_307(client):
    response = client.get("/admin/bookings", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"].startswith(urls.Admin.SIGN_IN)
