import pytest

from shop_backend.payments import cart as payments_cart
from shop_backend.payments.errors import CheckoutValidationError
from shop_backend.payments.models import CartItem, FlowType


def _body(**overrides):
    body = {
        "cart": [{"name": "Widget", "price": 50, "quantity": 2}],
        "customerName": " Jane Doe ",
        "customerEmail": "jane@example.com",
        "customerPhone": "0820000000",
        "customerAddress": "1 Main St",
    }
    body.update(overrides)
    return body


@pytest.mark.parametrize("cart", [None, [], "Widget", {"name": "Widget"}])
def test_parse_rejects_empty_or_non_list_cart(cart):
    with pytest.raises(CheckoutValidationError) as exc:
        payments_cart.parse_checkout_request(_body(cart=cart))
    assert exc.value.status_code == 400
    assert exc.value.to_dict() == {"error": "Cart is empty"}

def test_parse_reports_missing_customer_fields():
    with pytest.raises(CheckoutValidationError) as exc:
        payments_cart.parse_checkout_request(_body(customerEmail="", customerAddress="   "))
    body = exc.value.to_dict()
    assert body["error"] == payments_cart.MISSING_CUSTOMER_DETAILS
    assert body["missing"] == ["customerEmail", "customerAddress"]

def test_empty_cart_is_checked_before_customer_fields():
    with pytest.raises(CheckoutValidationError) as exc:
        payments_cart.parse_checkout_request({"cart": []})
    assert exc.value.error == "Cart is empty"

@pytest.mark.parametrize("item", [
    {"name": "Widget", "price": -1, "quantity": 1},
    {"name": "Widget", "price": 10, "quantity": 0},
    {"name": "   ", "price": 10, "quantity": 1},
    {"price": 10, "quantity": 1},
    {"name": "Widget", "price": float("inf"), "quantity": 1},
    {"name": "Widget", "price": float("nan"), "quantity": 1},
])
def test_parse_rejects_invalid_items(item):
    with pytest.raises(CheckoutValidationError) as exc:
        payments_cart.parse_checkout_request(_body(cart=[item]))
    assert exc.value.error == "Invalid cart item"
    assert exc.value.fields["message"]

@pytest.mark.parametrize("overrides", [{"customerName": 12345}, {"bookingEmergency": "sometimes"}])
def test_parse_labels_non_cart_errors_as_request_errors(overrides):
    with pytest.raises(CheckoutValidationError) as exc:
        payments_cart.parse_checkout_request(_body(**overrides))
    assert exc.value.error == "Invalid checkout request"
    assert exc.value.fields["message"].startswith(next(iter(overrides)))

def test_parse_rejects_non_object_body():
    with pytest.raises(CheckoutValidationError) as exc:
        payments_cart.parse_checkout_request(["not", "a", "dict"])
    assert exc.value.error == "Invalid JSON body"

def test_parse_strips_customer_fields_and_detects_flow():
    req = payments_cart.parse_checkout_request(_body(bookingId=1234, customerPhone=821234567))
    assert req.customer_name == "Jane Doe"
    assert req.customer_phone == "821234567"
    assert req.booking_id == "1234"
    assert req.flow_type is FlowType.BOOKING

def test_line_items_use_minor_units_and_skip_blank_description():
    items = [
        CartItem(name="Dripper", price=19.99, quantity=3, description="  "),
        CartItem(name="Valve", price=5, quantity=1, description="Brass 20mm"),
    ]
    line_items = payments_cart.to_line_items(items, "zar")
    assert line_items[0] == {
        "quantity": 3,
        "price_data": {"currency": "zar", "unit_amount": 1999, "product_data": {"name": "Dripper"}},
    }
    assert line_items[1]["price_data"]["product_data"]["description"] == "Brass 20mm"
    assert payments_cart.total_minor(items) == 1999 * 3 + 500

def test_total_major_is_tolerant_of_bad_values():
    cart = [
        {"name": "A", "price": "12.5", "quantity": 2},
        {"name": "B", "price": "oops", "quantity": 4},
        {"name": "C", "price": 3},
    ]
    assert payments_cart.total_major(cart) == 28.0
    assert payments_cart.total_major([]) == 0.0

def test_booking_service_label():
    assert payments_cart.booking_service_label([CartItem(name="Booking: Lawn Care", price=1, quantity=1)]) == "Lawn Care"
    assert payments_cart.booking_service_label([]) == "Consultation"

def test_redirect_urls_per_flow():
    order = payments_cart.parse_checkout_request(_body())
    booking = payments_cart.parse_checkout_request(_body(bookingId="bk 1"))
    origin = "https://shop.test"

    assert payments_cart.success_url(origin, order) == "https://shop.test/thank-you-order.html?sessionId={CHECKOUT_SESSION_ID}"
    assert payments_cart.cancel_url(origin, order) == "https://shop.test/checkout.html"
    assert payments_cart.success_url(origin, booking) == (
        "https://shop.test/thank-you.html?bookingId=bk%201&sessionId={CHECKOUT_SESSION_ID}"
    )
    assert payments_cart.cancel_url(origin, booking) == "https://shop.test/booking-page.html"

def test_metadata_carries_flow_and_booking_id():
    order = payments_cart.parse_checkout_request(_body())
    booking = payments_cart.parse_checkout_request(_body(bookingId="bk_9"))
    assert payments_cart.make_metadata(order) == {"flow_type": "order", "bookingId": ""}
    assert payments_cart.make_metadata(booking) == {"flow_type": "booking", "bookingId": "bk_9"}
