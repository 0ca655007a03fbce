import datetime
import json
from urllib.parse import parse_qs, urlparse

from edgehomes import urls


def _listing(property_json, total_pages=1, page=1):
    return {
        "properties": [property_json()],
        "pagination": {
            "page": page,
            "limit": 6,
            "itemCount": 6 * total_pages,
            "totalPages": total_pages,
            "hasNextPage": page < total_pages,
            "hasPreviousPage": page > 1,
        },
    }


def _booking_form(**overrides):
    check_in = datetime.date.today() + datetime.timedelta(days=3)
    form = {
        "step": "pay",
        "action": "submit",
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+2348012345678",
        "check_in": check_in.isoformat(),
        "check_out": (check_in + datetime.timedelta(days=2)).isoformat(),
    }
    form.update(overrides)
    return form


def test_home_lists_properties_with_filters(client, fake_backend, property_json):
    fake_backend.add("GET", "/property", _listing(property_json, total_pages=3))

    response = client.get("/", params={"location": "Lekki", "type": "Short-let"})

    assert response.status_code == 200
    assert "Lekki Waterfront Loft" in response.text
    assert "₦200,000/night" in response.text
    sent = fake_backend.calls("GET", "/property")[0].url.params
    assert sent["location"] == "Lekki"
    assert sent["type"] == "Short-let"
    assert sent["limit"] == "6"
    assert "page=2" in response.text


def test_home_survives_backend_failure(client, fake_backend):
    fake_backend.add("GET", "/property", {"error": "Server Error", "message": "database down"}, status_code=500)

    response = client.get("/")

    assert response.status_code == 200
    assert "Failed to fetch properties: database down" in response.text


def test_book_query_opens_the_modal(client, fake_backend, property_json):
    fake_backend.add("GET", "/property", _listing(property_json))
    fake_backend.add("GET", "/property/prop-1", property_json())

    response = client.get("/", params={"book": "prop-1"})

    assert 'id="booking-modal"' in response.text
    assert 'action="/book/prop-1"' in response.text


def test_choosing_pay_shows_the_guest_form(client, fake_backend, property_json):
    fake_backend.add("GET", "/property", _listing(property_json))
    fake_backend.add("GET", "/property/prop-1", property_json())

    response = client.post("/book/prop-1", data={"step": "options", "action": "pay"})

    assert response.status_code == 200
    assert 'name="check_in"' in response.text
    assert 'value="pay"' in response.text


def test_invalid_booking_is_not_sent_for_payment(client, fake_backend, property_json):
    fake_backend.add("GET", "/property", _listing(property_json))
    fake_backend.add("GET", "/property/prop-1", property_json())

    response = client.post("/book/prop-1", data=_booking_form(email="nope"))

    assert response.status_code == 422
    assert "Email must be a valid email address" in response.text
    assert fake_backend.calls("POST", "/payments/booking/initialize") == []


def test_valid_booking_redirects_to_gateway(client, fake_backend, property_json):
    fake_backend.add("GET", "/property/prop-1", property_json())
    fake_backend.add("POST", "/payments/booking/initialize", {"authorization_url": "https://pay.test/checkout"})

    response = client.post("/book/prop-1", data=_booking_form(), follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "https://pay.test/checkout"
    sent = json.loads(fake_backend.calls("POST", "/payments/booking/initialize")[0].content)
    assert sent["totalAmount"] == 230000
    assert "isDashboard" not in sent


def test_unknown_booking_action_is_rejected(client):
    response = client.post("/book/prop-1", data={"step": "options", "action": "teleport"})
    assert response.status_code == 400


def test_property_page_has_share_link(client, fake_backend, property_json):
    fake_backend.add("GET", "/property/prop-1", property_json())

    response = client.get("/property/prop-1")

    assert response.status_code == 200
    assert "/property/prop-1" in response.text
    assert f"{urls.HOME}?book=prop-1" in response.text


def test_missing_property_renders_not_found(client, fake_backend):
    fake_backend.add("GET", "/property/ghost", {"error": "Not Found", "message": "Property not found"}, status_code=404)

    response = client.get("/property/ghost")

    assert response.status_code == 404
    assert "Property not found" in response.text


def test_verify_payment_without_reference_goes_home(client):
    response = client.get(urls.Public.VERIFY_BOOKING_PAYMENT, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == urls.HOME


def test_pending_payment_page_refreshes_itself(client, fake_backend):
    fake_backend.add("GET", "/payments/booking/verify/ref-1", {
        "_id": "t-1", "amount": 230000, "paymentReference": "ref-1", "type": "BOOKING_PAYMENT", "status": "PENDING",
    })

    response = client.get(urls.Public.VERIFY_BOOKING_PAYMENT, params={"trxref": "ref-1"})

    assert response.status_code == 200
    assert "Payment pending" in response.text
    assert 'http-equiv="refresh"' in response.text
    assert "reference=ref-1" in response.text


def test_successful_payment_page(client, fake_backend):
    fake_backend.add("GET", "/payments/booking/verify/ref-2", {
        "_id": "t-2", "amount": 230000, "paymentReference": "ref-2", "type": "BOOKING_PAYMENT", "status": "SUCCESS",
    })

    response = client.get(urls.Public.VERIFY_BOOKING_PAYMENT, params={"reference": "ref-2"})

    assert "Payment successful" in response.text
    assert 'http-equiv="refresh"' not in response.text


def test_ephemeral_params_are_stripped_from_the_browser_url(client, fake_backend):
    fake_backend.add("GET", "/payments/booking/verify/ref-3", {"error": "Bad", "message": "Unknown reference"}, status_code=400)

    response = client.get(urls.Public.VERIFY_BOOKING_PAYMENT, params={"reference": "ref-3"})

    assert 'history.replaceState(null, "", "/verify-payment")' in response.text


def test_pagination_links_keep_filters(client, fake_backend, property_json):
    fake_backend.add("GET", "/property", _listing(property_json, total_pages=10, page=5))

    response = client.get("/", params={"page": "5", "location": "Ikoyi"})

    hrefs = [part.split('"')[0] for part in response.text.split('href="')[1:]]
    page_links = [h for h in hrefs if "page=" in h]
    pages = {parse_qs(urlparse(h.replace("&amp;", "&")).query)["page"][0] for h in page_links}
    assert {"1", "4", "5", "6", "10"} <= pages
    assert all("location=Ikoyi" in h for h in page_links)
