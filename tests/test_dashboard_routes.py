import json
from urllib.parse import unquote

from edgehomes import urls
from edgehomes.cache import tag_key
from edgehomes.constants import FLASH_COOKIE_NAME
from edgehomes.enums import RevalidateTag


def _flash(response):
    return json.loads(unquote(response.cookies[FLASH_COOKIE_NAME]))


SUBSCRIPTION_DETAILS = {
    "userProfile": {"name": "Ada Lovelace", "credits": 2},
    "properties": [
        {"id": "prop-1", "title": "Lekki Waterfront Loft", "status": "ACTIVE", "daysRemaining": 3},
    ],
    "creditOptions": [
        {"credits": 1, "price": 5000, "description": "Single listing"},
        {"credits": 5, "price": 20000, "description": "Starter pack"},
    ],
    "unlimitedOption": {"price": 150000, "duration": "1 year", "description": "List without limits"},
}


def test_dashboard_needs_a_session(client):
    response = client.get(urls.User.DASHBOARD, follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == urls.with_redirect(urls.User.SIGN_IN, "/dashboard")


def test_summary_uses_backend_quick_actions(user_client, fake_backend):
    fake_backend.add("GET", "/user/dashboard/summary", {
        "stats": {"totalBookings": 4, "creditsAvailable": 2},
        "upcomingBookings": [],
        "quickActions": [{"label": "List a property", "icon": "Plus", "href": urls.User.MY_PROPERTIES}],
    })

    response = user_client.get(urls.User.DASHBOARD)

    assert response.status_code == 200
    assert "List a property" in response.text
    assert 'data-lucide="plus"' in response.text


def test_summary_falls_back_when_backend_fails(user_client, fake_backend):
    fake_backend.add("GET", "/user/dashboard/summary", {"error": "x", "message": "down"}, status_code=503)

    response = user_client.get(urls.User.DASHBOARD)

    assert response.status_code == 200
    assert "Browse Properties" in response.text
    assert 'data-lucide="credit-card"' in response.text


def test_browse_sends_price_range(user_client, fake_backend, property_json):
    fake_backend.add("GET", "/property/user", {"properties": [property_json()], "pagination": {"page": 1, "totalPages": 1}})

    response = user_client.get(urls.User.PROPERTIES, params={"price": "1000000+", "location": "Ikoyi"})

    assert "Lekki Waterfront Loft" in response.text
    params = fake_backend.calls("GET", "/property/user")[0].url.params
    assert params["min"] == "1000000"
    assert "max" not in params
    assert params["location"] == "Ikoyi"
    assert params["page"] == "1"


def test_dashboard_booking_is_flagged(user_client, fake_backend, property_json):
    fake_backend.add("GET", "/property/prop-1", property_json())
    fake_backend.add("POST", "/payments/booking/initialize", {"authorization_url": "https://pay.test/dash"})

    response = user_client.post(f"{urls.User.PROPERTIES}/prop-1/book", data={
        "step": "pay",
        "action": "submit",
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+2348012345678",
        "check_in": "2099-01-01",
        "check_out": "2099-01-04",
    }, follow_redirects=False)

    assert response.headers["location"] == "https://pay.test/dash"
    sent = json.loads(fake_backend.calls("POST", "/payments/booking/initialize")[0].content)
    assert sent["isDashboard"] == "true"


def test_property_detail(user_client, fake_backend, property_json):
    fake_backend.add("GET", "/property/prop-1", property_json())

    response = user_client.get(urls.User.PROPERTY.format(property_id="prop-1"))

    assert response.status_code == 200
    assert f"{urls.User.PROPERTIES}?book=prop-1" in response.text


def test_my_properties_shows_listing_credits(user_client, fake_backend, property_json):
    fake_backend.add("GET", "/property/my-properties", {"properties": [property_json()]})

    response = user_client.get(urls.User.MY_PROPERTIES, params={"edit": "prop-1"})

    assert "Listing credits: <strong>3</strong>" in response.text
    assert f'action="{urls.User.MY_PROPERTIES}/prop-1/edit"' in response.text


def test_owner_edit_uses_owner_endpoint(user_client, fake_backend, property_json):
    prop = property_json()
    fake_backend.add("GET", "/property/prop-1", prop)
    fake_backend.add("PATCH", "/property/prop-1/user", {})

    response = user_client.post(f"{urls.User.MY_PROPERTIES}/prop-1/edit", data={
        "title": "Lekki Loft Renovated",
        "location": prop["location"],
        "type": prop["type"],
        "beds": "2",
        "baths": "2",
        "available": "true",
        "price_amount": "250000",
        "price_currency": "₦",
        "price_duration": "night",
        "features": prop["features"],
        "image_order": ["img-a", "img-b"],
    }, follow_redirects=False)

    assert _flash(response)["message"] == "Property updated successfully!"
    body = fake_backend.calls("PATCH", "/property/prop-1/user")[0].content
    assert b"Lekki Loft Renovated" in body
    assert b"250000" in body
    assert fake_backend.calls("PATCH", "/property/prop-1") == []


def test_renew_without_credits_is_flashed(user_client, fake_backend):
    fake_backend.add("POST", "/property/prop-1/renew", {"error": "Bad Request", "message": "Insufficient credits"}, status_code=400)

    response = user_client.post(
        f"{urls.User.MY_PROPERTIES}/prop-1/renew", data={"next": urls.User.SUBSCRIPTION}, follow_redirects=False
    )

    assert response.headers["location"] == urls.User.SUBSCRIPTION
    assert _flash(response) == {"category": "error", "message": "Insufficient credits"}


def test_bookings_page(user_client, fake_backend):
    fake_backend.add("GET", "/bookings/user", {"bookings": [], "pagination": {"page": 1, "totalPages": 1}})

    response = user_client.get(urls.User.BOOKINGS)

    assert "No bookings yet." in response.text


def test_booking_verification_without_reference(user_client):
    response = user_client.get(urls.User.VERIFY_BOOKING_PAYMENT, follow_redirects=False)
    assert response.headers["location"] == urls.User.PROPERTIES


def test_pending_booking_verification_refreshes(user_client, fake_backend):
    fake_backend.add("GET", "/payments/booking/verify/ref-7", {
        "_id": "t-7", "amount": 230000, "paymentReference": "ref-7", "type": "BOOKING_PAYMENT", "status": "PENDING",
    })

    response = user_client.get(urls.User.VERIFY_BOOKING_PAYMENT, params={"reference": "ref-7"})

    assert "Payment pending" in response.text
    assert f"url={urls.User.VERIFY_BOOKING_PAYMENT}?reference=ref-7" in response.text


def test_transactions_page_derives_stats(user_client, fake_backend):
    fake_backend.add("GET", "/transaction", {
        "transactions": [
            {"_id": "t-1", "amount": 20000, "creditsPurchased": 5, "paymentReference": "r1",
             "type": "CREDIT_PURCHASE", "status": "SUCCESS"},
            {"_id": "t-2", "amount": 5000, "creditsPurchased": 1, "paymentReference": "r2",
             "type": "CREDIT_PURCHASE", "status": "FAILED"},
        ],
        "pagination": {"page": 1, "totalPages": 1, "itemCount": 2},
        "credit": 5,
    })

    response = user_client.get(urls.User.PAYMENT, params={"status": "SUCCESS"})

    assert "₦20,000" in response.text
    assert fake_backend.calls("GET", "/transaction")[0].url.params["status"] == "SUCCESS"


def test_subscription_hides_packages_below_current_credits(user_client, fake_backend):
    fake_backend.add("GET", "/user/subscription-details", SUBSCRIPTION_DETAILS)

    response = user_client.get(urls.User.SUBSCRIPTION)

    assert "5 credits" in response.text
    assert "1 credits" not in response.text
    assert "Renew (1 credit)" in response.text


def test_credit_purchase_uses_backend_price(user_client, fake_backend):
    fake_backend.add("GET", "/user/subscription-details", SUBSCRIPTION_DETAILS)
    fake_backend.add("POST", "/payments/credit/initialize", {"authorizationUrl": "https://pay.test/credits"})

    response = user_client.post(
        f"{urls.User.SUBSCRIPTION}/credits", data={"credits": "5", "amount": "1"}, follow_redirects=False
    )

    assert response.status_code == 303
    assert response.headers["location"] == "https://pay.test/credits"
    sent = json.loads(fake_backend.calls("POST", "/payments/credit/initialize")[0].content)
    assert sent["amount"] == 20000
    assert sent["creditCount"] == 5


def test_unknown_credit_package_is_refused(user_client, fake_backend):
    fake_backend.add("GET", "/user/subscription-details", SUBSCRIPTION_DETAILS)

    response = user_client.post(f"{urls.User.SUBSCRIPTION}/credits", data={"credits": "7"}, follow_redirects=False)

    assert _flash(response)["category"] == "error"
    assert fake_backend.calls("POST", "/payments/credit/initialize") == []


def test_unlimited_plan_purchase(user_client, fake_backend):
    fake_backend.add("GET", "/user/subscription-details", SUBSCRIPTION_DETAILS)
    fake_backend.add("POST", "/payments/initialize", {"authorization_url": "https://pay.test/unlimited"})

    response = user_client.post(f"{urls.User.SUBSCRIPTION}/unlimited", follow_redirects=False)

    assert response.headers["location"] == "https://pay.test/unlimited"
    sent = json.loads(fake_backend.calls("POST", "/payments/initialize")[0].content)
    assert sent == {"type": "UNLIMITED_YEARLY", "creditCount": 1, "amount": 150000}


def test_successful_credit_payment_refreshes_header(user_client, fake_backend, fake_redis):
    fake_backend.add("GET", "/payments/credit/verify/ref-5", {
        "_id": "t-5", "amount": 20000, "creditsPurchased": 5, "paymentReference": "ref-5",
        "type": "CREDIT_PURCHASE", "status": "SUCCESS",
    })

    response = user_client.get(urls.User.VERIFY_PAYMENT, params={"reference": "ref-5"})

    assert "Payment successful" in response.text
    # The profile cached while rendering the layout was dropped afterwards
    assert tag_key(RevalidateTag.HEADER_DETAILS) not in fake_redis.sets
