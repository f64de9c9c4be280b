"""
Tests for the /api/invoices endpoints.
"""
from datetime import date

import pytest

from app.core.exceptions import BusinessError, InvoiceValidationError, NotFoundError, StockCommitError
from app.services import invoice_service
from conftest import fresh_quantity


@pytest.fixture
def cart(make_medicine, make_variant):
    para = make_medicine(name="Paracetamol", gst_rate=5)
    ceti = make_medicine(name="Cetirizine", gst_rate=12)
    dolo = make_variant(medicine=para, brand_name="Dolo", dosage="650mg", selling_price="100.00", quantity=10)
    okacet = make_variant(
        medicine=ceti, brand_name="Okacet", dosage="10mg", selling_price="50.00", quantity=5, batch_number="C77"
    )
    return dolo, okacet


def today_number(seq):
    return f"INV-{date.today():%Y%m%d}-{seq:04d}"


def test_preview_returns_gst_breakdown(client, cart):
    dolo, okacet = cart
    response = client.post(
        "/api/invoices/preview",
        json={
            "items": [
                {"medicineVariantId": dolo.id, "quantity": 2},
                {"medicineVariantId": okacet.id, "quantity": 1},
            ],
            "discountAmount": 20,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["subTotal"] == 250.0
    assert body["discountAmount"] == 20.0
    assert body["taxableAmount"] == 216.31
    assert body["cgst"] == 6.85
    assert body["sgst"] == 6.85
    assert body["totalAmount"] == 230.0

    first, second = body["items"]
    assert first["medicineVariantId"] == dolo.id
    assert first["lineTotal"] == 200.0
    assert first["discountAmount"] == 16.0
    assert first["taxableValue"] == 175.24
    assert second["gstRate"] == 12
    assert second["cgstAmount"] == 2.47
    assert second["sgstAmount"] == 2.47


def test_preview_ignores_stock_levels(client, cart):
    dolo, _ = cart
    response = client.post("/api/invoices/preview", json={"items": [{"medicineVariantId": dolo.id, "quantity": 50}]})
    assert response.status_code == 200
    assert response.json()["totalAmount"] == 5000.0


def test_preview_without_items(client):
    response = client.post("/api/invoices/preview", json={})
    assert response.status_code == 400
    assert response.json() == {"detail": "items array is required"}


def test_preview_rejects_non_positive_quantity(client, cart):
    dolo, _ = cart
    response = client.post("/api/invoices/preview", json={"items": [{"medicineVariantId": dolo.id, "quantity": 0}]})
    assert response.status_code == 400
    assert response.json()["detail"] == "Each item must have medicineVariantId and quantity > 0"


def test_malformed_body_is_a_400(client):
    response = client.post("/api/invoices/preview", json={"items": "two strips"})
    assert response.status_code == 400
    assert isinstance(response.json()["detail"], str)


def test_create_invoice(client, db, cart):
    dolo, okacet = cart
    response = client.post(
        "/api/invoices",
        json={
            "items": [
                {"medicineVariantId": dolo.id, "quantity": 2},
                {"medicineVariantId": okacet.id, "quantity": 1},
            ],
            "discountAmount": 20,
            "customerName": "Meera",
            "doctorName": "Iyer",
            "paymentMode": "Cash",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["invoiceNumber"] == today_number(1)
    assert body["customerName"] == "Meera"
    assert body["doctorName"] == "Iyer"
    assert body["paymentMode"] == "Cash"
    assert body["totalAmount"] == 230.0
    assert [item["brandName"] for item in body["items"]] == ["Dolo", "Okacet"]
    assert body["items"][0]["batchNumber"] == "B001"
    assert body["items"][0]["hsnCode"] == "3004"

    assert fresh_quantity(db, dolo.id) == 8
    assert fresh_quantity(db, okacet.id) == 4


def test_create_numbers_sequentially(client, cart):
    dolo, _ = cart
    payload = {"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "paymentMode": "Card"}
    numbers = [client.post("/api/invoices", json=payload).json()["invoiceNumber"] for _ in range(2)]
    assert numbers == [today_number(1), today_number(2)]


def test_create_with_short_stock(client, db, cart):
    _, okacet = cart
    response = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": okacet.id, "quantity": 6}], "paymentMode": "UPI"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient stock for Okacet 10mg. Available: 5, Requested: 6"
    assert client.get("/api/invoices").json() == []
    assert fresh_quantity(db, okacet.id) == 5


def test_create_with_bad_payment_mode(client, cart):
    dolo, _ = cart
    response = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "paymentMode": "Cheque"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "paymentMode must be Cash, Card, or UPI"


def test_create_with_unknown_variant(client):
    response = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": 404, "quantity": 1}], "paymentMode": "Cash"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "One or more medicine variants not found"


def test_failed_stock_reduction_is_a_500_and_leaves_no_invoice(client, db, cart, monkeypatch):
    dolo, _ = cart

    def broken(session, variant_id, quantity):
        raise RuntimeError("disk I/O error")

    monkeypatch.setattr(invoice_service, "decrement_stock", broken)
    response = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "paymentMode": "Cash"},
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to reduce stock"}
    assert client.get("/api/invoices").json() == []
    assert fresh_quantity(db, dolo.id) == 10


def test_get_invoice_by_id(client, cart):
    dolo, _ = cart
    created = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 3}], "paymentMode": "Cash"},
    ).json()

    response = client.get(f"/api/invoices/{created['id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["invoiceNumber"] == created["invoiceNumber"]
    assert body["items"][0]["quantity"] == 3
    assert body["items"][0]["lineTotal"] == 300.0


def test_get_missing_invoice(client):
    response = client.get("/api/invoices/999")
    assert response.status_code == 404
    assert response.json() == {"detail": "Invoice not found"}


def test_list_invoices_with_filters(client, cart):
    dolo, _ = cart
    for name in ("Meera", "Arjun", "meera k"):
        client.post(
            "/api/invoices",
            json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "paymentMode": "Cash", "customerName": name},
        )

    newest_first = client.get("/api/invoices").json()
    assert [inv["customerName"] for inv in newest_first] == ["meera k", "Arjun", "Meera"]

    oldest_first = client.get("/api/invoices", params={"sort": "dateAsc"}).json()
    assert [inv["invoiceNumber"] for inv in oldest_first] == [today_number(1), today_number(2), today_number(3)]

    by_name = client.get("/api/invoices", params={"customerName": "MEERA", "sort": "dateAsc"}).json()
    assert [inv["customerName"] for inv in by_name] == ["Meera", "meera k"]

    by_number = client.get("/api/invoices", params={"invoiceNumber": "-0002"}).json()
    assert [inv["customerName"] for inv in by_number] == ["Arjun"]

    today = date.today().isoformat()
    assert len(client.get("/api/invoices", params={"fromDate": today, "toDate": today}).json()) == 3
    assert client.get("/api/invoices", params={"fromDate": "2000-01-01", "toDate": "2000-01-31"}).json() == []


def test_invoice_pdf(client, cart):
    dolo, _ = cart
    created = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "paymentMode": "UPI", "customerName": "A & B"},
    ).json()

    response = client.get(f"/api/invoices/{created['id']}/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert created["invoiceNumber"] in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_pdf_for_missing_invoice(client):
    assert client.get("/api/invoices/999/pdf").status_code == 404


def test_preview_shows_a_discount_larger_than_the_bill(client, cart):
    dolo, _ = cart
    response = client.post(
        "/api/invoices/preview",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "discountAmount": 150},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["subTotal"] == 100.0
    assert body["discountAmount"] == 150.0
    assert body["totalAmount"] == -50.0


def test_create_rejects_a_discount_larger_than_the_bill(client, db, cart):
    dolo, _ = cart
    response = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "discountAmount": 150, "paymentMode": "Cash"},
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "discountAmount (150.00) cannot exceed subTotal (100.00)"}
    assert client.get("/api/invoices").json() == []
    assert fresh_quantity(db, dolo.id) == 10


def test_unexpected_create_error_hides_the_cause(client, cart, monkeypatch):
    dolo, _ = cart

    def broken(*args, **kwargs):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(invoice_service, "create_invoice", broken)
    response = client.post(
        "/api/invoices",
        json={"items": [{"medicineVariantId": dolo.id, "quantity": 1}], "paymentMode": "Cash"},
    )
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to create invoice"}


@pytest.mark.parametrize(
    "error,status_code",
    [
        (InvoiceValidationError("items array is required"), 400),
        (NotFoundError("Invoice not found"), 404),
        (StockCommitError("Failed to reduce stock"), 500),
    ],
)
def test_billing_errors_keep_their_status(error, status_code):
    http_error = BusinessError.from_billing_error(error)
    assert http_error.status_code == status_code
    assert http_error.detail == error.detail
