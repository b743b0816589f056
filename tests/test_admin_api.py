"""Admin (supplier) endpoints: ledger, fulfilment, pricing, dashboard and mail."""
from decimal import Decimal

from partner_portal.core.exceptions import ExternalServiceError
from partner_portal.models.partner import ApprovalStatus, PartnerRole

from conftest import SHIPPING_ADDRESS, auth_headers, create_partner, create_product, sign


async def place_order(client, partner, product, variant, payment_method, quantity=25):
    headers = auth_headers(partner)
    await client.post(
        "/api/v1/cart/items",
        json={"product_id": str(product.id), "variant_id": str(variant.id), "quantity": quantity},
        headers=headers,
    )
    started = (await client.post(
        "/api/v1/checkout/start",
        json={"payment_method": payment_method, "shipping_address": SHIPPING_ADDRESS},
        headers=headers,
    )).json()

    payment = None
    if payment_method == "online":
        gateway_order_id = started["payment_order"]["id"]
        payment = {
            "razorpay_payment_id": f"pay_{gateway_order_id}",
            "razorpay_order_id": gateway_order_id,
            "razorpay_signature": sign(gateway_order_id, f"pay_{gateway_order_id}"),
        }

    response = await client.post(
        f"/api/v1/checkout/{started['intent']['id']}/confirm", json=payment, headers=headers
    )
    assert response.status_code == 200
    return response.json()["order"]


async def test_partner_ledger(client, admin, dealer, catalog):
    product, variant = catalog
    await place_order(client, dealer, product, variant, "online")
    await place_order(client, dealer, product, variant, "cod", quantity=30)

    response = await client.get(f"/api/v1/partners/{dealer.id}/ledger", headers=auth_headers(admin))

    assert response.status_code == 200
    ledger = response.json()
    assert len(ledger["entries"]) == 3
    assert Decimal(ledger["total_invoiced"]) == Decimal("4950")
    assert Decimal(ledger["total_paid"]) == Decimal("2250")
    assert Decimal(ledger["outstanding_balance"]) == Decimal("2700")
    assert {e["entry_type"] for e in ledger["entries"]} == {"DEBIT", "CREDIT"}


async def test_order_numbers_follow_partner_role(client, db, admin, catalog):
    product, variant = catalog
    sub_dealer = await create_partner(db, "sub@example.com", role=PartnerRole.SUB_DEALER.value)
    dealer = await create_partner(db, "main@example.com", role=PartnerRole.MAIN_DEALER.value)

    first = await place_order(client, sub_dealer, product, variant, "cod")
    second = await place_order(client, dealer, product, variant, "cod")
    third = await place_order(client, sub_dealer, product, variant, "cod")

    assert [first["order_number"], second["order_number"], third["order_number"]] == [
        "SD-00001", "D-00001", "SD-00002",
    ]


async def test_delivery_status_update_emails_partner(client, admin, dealer, catalog, email_service):
    product, variant = catalog
    order = await place_order(client, dealer, product, variant, "cod")

    response = await client.put(
        f"/api/v1/orders/{order['id']}/status",
        json={"status": "Shipped"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["order"]["delivery_status"] == "shipped"
    assert body["email_sent"] is True
    assert email_service.sent[0]["to"] == "dealer@example.com"
    assert email_service.sent[0]["subject"] == "Order D-00001: shipped"


async def test_status_change_stands_when_email_fails(client, admin, dealer, catalog, email_service):
    product, variant = catalog
    order = await place_order(client, dealer, product, variant, "cod")
    email_service.fail = True

    response = await client.put(
        f"/api/v1/orders/{order['id']}/status",
        json={"status": "delivered"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["email_sent"] is False
    assert "SMTP" in response.json()["email_error"]

    orders = await client.get(
        "/api/v1/orders", params={"delivery_status": "delivered"}, headers=auth_headers(admin)
    )
    assert orders.json()["total"] == 1


async def test_partner_sees_only_own_orders(client, db, admin, dealer, catalog):
    product, variant = catalog
    other = await create_partner(db, "other@example.com")
    order = await place_order(client, dealer, product, variant, "cod")

    mine = await client.get("/api/v1/orders/my", headers=auth_headers(dealer))
    assert mine.json()["total"] == 1

    response = await client.get(f"/api/v1/orders/my/{order['id']}", headers=auth_headers(other))
    assert response.status_code == 404

    response = await client.get("/api/v1/orders", headers=auth_headers(dealer))
    assert response.status_code == 403


async def test_variant_pricing_update(client, admin, dealer, catalog):
    product, variant = catalog

    response = await client.put(
        f"/api/v1/products/variants/{variant.id}/pricing",
        json={
            "dealer_price": "200",
            "dealer_discount": "0",
            "subdealer_price": "210",
            "subdealer_discount": "5",
            "stock": 40,
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["stock"] == 40
    assert body["product_name"] == "Aqua Mineral Water"
    assert Decimal(str(body["retail_price"])) == Decimal("0")

    catalog_response = await client.get("/api/v1/catalog/products", headers=auth_headers(dealer))
    priced = catalog_response.json()[0]["variants"][0]
    assert Decimal(priced["net_price"]) == Decimal("200")
    assert priced["stock"] == 40


async def test_variant_pricing_rejects_negative_stock(client, admin, catalog):
    product, variant = catalog
    response = await client.put(
        f"/api/v1/products/variants/{variant.id}/pricing",
        json={"dealer_price": "200", "stock": -1},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422


async def test_create_product_with_variants(client, admin, dealer):
    response = await client.post(
        "/api/v1/products",
        json={
            "product_name": "Aqua Can",
            "category": "Water",
            "image_urls": ["https://cdn.example.com/can-front.jpg", " https://cdn.example.com/can-side.jpg "],
            "variants": [
                {"quantity_value": "20", "quantity_unit": "L", "stock": 200,
                 "dealer_price": "60", "dealer_discount": "5", "retail_price": "70"},
            ],
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    created = response.json()
    assert created["image_urls"] == [
        "https://cdn.example.com/can-front.jpg", "https://cdn.example.com/can-side.jpg",
    ]
    assert created["image_url"] == "https://cdn.example.com/can-front.jpg"
    variant = created["variants"][0]
    assert Decimal(str(variant["dealer_price"])) == Decimal("60")
    assert Decimal(str(variant["customer_price"])) == Decimal("0")

    response = await client.delete(f"/api/v1/products/{created['id']}", headers=auth_headers(admin))
    assert response.status_code == 204
    catalog_response = await client.get("/api/v1/catalog/products", headers=auth_headers(dealer))
    assert catalog_response.json() == []


async def test_product_needs_at_least_one_image(client, admin):
    response = await client.post(
        "/api/v1/products",
        json={"product_name": "Aqua Can", "image_urls": ["  "]},
        headers=auth_headers(admin),
    )

    assert response.status_code == 422

    response = await client.post(
        "/api/v1/products", json={"product_name": "Aqua Can"}, headers=auth_headers(admin)
    )

    assert response.status_code == 422


async def test_update_product_gallery(client, admin, dealer, catalog):
    product, variant = catalog
    gallery = ["https://cdn.example.com/bottle-2.jpg", "https://cdn.example.com/bottle-1.jpg"]

    response = await client.patch(
        f"/api/v1/products/{product.id}", json={"image_urls": gallery}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["image_urls"] == gallery
    assert response.json()["image_url"] == gallery[0]

    catalog_response = await client.get("/api/v1/catalog/products", headers=auth_headers(dealer))
    entry = catalog_response.json()[0]
    assert entry["image_urls"] == gallery
    assert entry["image_url"] == gallery[0]

    response = await client.patch(
        f"/api/v1/products/{product.id}", json={"image_urls": []}, headers=auth_headers(admin)
    )
    assert response.status_code == 422


async def test_categories(client, admin, dealer):
    headers = auth_headers(admin)
    response = await client.post("/api/v1/categories", json={"name": "Water"}, headers=headers)
    assert response.status_code == 201

    response = await client.post("/api/v1/categories", json={"name": "Water"}, headers=headers)
    assert response.status_code == 400

    response = await client.get("/api/v1/catalog/categories", headers=auth_headers(dealer))
    assert [c["name"] for c in response.json()] == ["Water"]


async def test_dashboard_stats(client, db, admin, dealer, catalog):
    product, variant = catalog
    await create_partner(db, "waiting@example.com", role=PartnerRole.RETAILER_OUTLET.value,
                         approval_status=ApprovalStatus.PENDING)
    await create_product(db, name="Aqua Sachet", stock=5)
    await place_order(client, dealer, product, variant, "cod")

    stats = (await client.get("/api/v1/dashboard/stats", headers=auth_headers(admin))).json()
    assert stats["total_dealers"] == 1
    assert stats["total_retailer_outlets"] == 1
    assert stats["pending_approvals"] == 1
    assert stats["total_products"] == 2
    assert stats["low_stock_variants"] == 1
    assert stats["total_orders"] == 1
    assert stats["new_orders"] == 1

    await client.post("/api/v1/dashboard/orders/seen", headers=auth_headers(admin))
    stats = (await client.get("/api/v1/dashboard/stats", headers=auth_headers(admin))).json()
    assert stats["new_orders"] == 0


async def test_create_payment_order(client, dealer, payment_service):
    response = await client.post(
        "/api/v1/payments/create-order", json={"amount": 500}, headers=auth_headers(dealer)
    )

    assert response.status_code == 200
    assert response.json() == {"id": "order_test1", "amount": 50000, "currency": "INR"}


async def test_create_payment_order_failure(client, dealer, payment_service):
    payment_service.error = ExternalServiceError("Keys missing")

    response = await client.post(
        "/api/v1/payments/create-order", json={"amount": 500}, headers=auth_headers(dealer)
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Keys missing"}


STATUS_EMAIL = {
    "orderId": "RT-00007",
    "status": "Delivered",
    "customerName": "Sri Lakshmi Stores",
    "customerEmail": "stores@example.com",
    "totalAmount": 1890.5,
    "items": [{"product_name": "Aqua Mineral Water", "quantity": 25}, {"name": "Jar", "quantity": 30}],
}


async def test_send_status_email(client, admin, email_service):
    response = await client.post(
        "/api/v1/notifications/send-status-email", json=STATUS_EMAIL, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert email_service.sent[0]["subject"] == "Order RT-00007: Delivered"
    assert "Jar" in email_service.sent[0]["html"]


async def test_send_status_email_failure(client, admin, email_service):
    email_service.fail = True

    response = await client.post(
        "/api/v1/notifications/send-status-email", json=STATUS_EMAIL, headers=auth_headers(admin)
    )

    assert response.status_code == 500
    assert "SMTP" in response.json()["error"]


async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "connected"
