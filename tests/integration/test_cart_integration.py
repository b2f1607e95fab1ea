import pytest


@pytest.fixture()
def medusa_cart_writes(monkeypatch, medusa):
    added = []

    def _create_cart(email=None):
        medusa.add_cart("cart_new", items=[], email=email)
        return {"id": "cart_new"}

    def _add_line_item(cart_id, variant_id, quantity, metadata=None):
        added.append((cart_id, variant_id, quantity))
        medusa.carts[cart_id]["items"].append({
            "id": f"li_{variant_id}", "variant_id": variant_id, "title": "Intake kit",
            "quantity": quantity, "unit_price": 6000,
        })
        medusa._recompute(cart_id)
        return medusa.get_cart(cart_id)

    monkeypatch.setattr("storefront.commerce.repository.create_cart", _create_cart)
    monkeypatch.setattr("storefront.commerce.repository.add_line_item", _add_line_item)
    monkeypatch.setattr("storefront.commerce.repository.update_cart", lambda cart_id, payload: medusa.get_cart(cart_id))
    return added


def test_sync_cart_returns_medusa_prices(client, medusa_cart_writes):
    r = client.post("/api/v1/cart", json={
        "authoritative": False,
        "email": "buyer@example.com",
        "items": [{"id": "variant_a", "quantity": 2, "price": 0.5, "name": "Intake kit"}],
    })

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["authoritative"] is True
    assert body["cart"]["id"] == "cart_new"
    assert body["cart"]["items"][0]["unit_price"] == 6000
    assert body["cart"]["total"] == 12000
    assert medusa_cart_writes == [("cart_new", "variant_a", 2)]


def test_resync_existing_cart_does_not_grow_it(client, medusa, medusa_cart_writes):
    medusa.add_cart("cart_1")
    payload = {"cartId": "cart_1", "items": [{"id": "variant_a", "quantity": 1}, {"id": "variant_b", "quantity": 2}]}

    first = client.post("/api/v1/cart", json=payload).json()
    second = client.post("/api/v1/cart", json=payload).json()

    assert first["cart"]["total"] == second["cart"]["total"] == 10000
    assert medusa_cart_writes == []

    # ligne retirée côté client
    r = client.post("/api/v1/cart", json={"cartId": "cart_1", "items": [{"id": "variant_a", "quantity": 1}]})
    assert r.json()["cart"]["total"] == 6000
    assert [i["variant_id"] for i in medusa.carts["cart_1"]["items"]] == ["variant_a"]


def test_sync_cart_refuses_authoritative_client_cart(client, medusa_cart_writes):
    r = client.post("/api/v1/cart", json={"authoritative": True, "items": [{"id": "variant_a", "quantity": 1}]})
    assert r.status_code == 422
    assert medusa_cart_writes == []


def test_sync_cart_empty(client, medusa_cart_writes):
    r = client.post("/api/v1/cart", json={"items": []})
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_cart"


def test_get_cart_is_always_reread(client, medusa):
    medusa.add_cart("cart_1")
    assert client.get("/api/v1/cart/cart_1").json()["cart"]["total"] == 10000

    medusa.set_item_price("cart_1", "li_1", 7000)
    assert client.get("/api/v1/cart/cart_1").json()["cart"]["total"] == 11000


def test_shipping_options_and_selection(client, medusa):
    medusa.add_cart("cart_1")
    medusa.shipping_options = {"so_ups": medusa.ups(), "so_fedex": medusa.fedex()}

    options = client.get("/api/v1/cart/cart_1/shipping-options").json()["shipping_options"]
    allowed = {o["id"]: o["allowed"] for o in options}
    assert allowed == {"so_ups": True, "so_fedex": False}

    r = client.post("/api/v1/cart/cart_1/shipping-method", json={"optionId": "so_ups"})
    assert r.status_code == 200
    cart = r.json()["cart"]
    assert cart["fulfillment"]["carrier"] == "ups"
    assert cart["total"] == 10500


def test_shipping_method_with_disallowed_carrier_is_refused(client, medusa):
    medusa.add_cart("cart_1")
    medusa.shipping_options = {"so_ups": medusa.ups(), "so_fedex": medusa.fedex()}

    r = client.post("/api/v1/cart/cart_1/shipping-method", json={"optionId": "so_fedex"})

    assert r.status_code == 400
    assert r.json()["code"] == "carrier_not_allowed"
    assert medusa.carts["cart_1"]["shipping_methods"] == []


def test_update_address(client, medusa, medusa_cart_writes):
    medusa.add_cart("cart_1")
    r = client.post("/api/v1/cart/cart_1/address", json={
        "shippingAddress": {
            "firstName": "Amy", "lastName": "Doe", "address1": "1 Main St",
            "city": "Austin", "province": "TX", "postalCode": "78701", "countryCode": "us",
        },
        "email": "amy@example.com",
    })
    assert r.status_code == 200, r.text
    assert r.json()["cart"]["id"] == "cart_1"


def test_update_address_requires_fields(client, medusa):
    medusa.add_cart("cart_1")
    r = client.post("/api/v1/cart/cart_1/address", json={"shippingAddress": {"city": "Austin"}})
    assert r.status_code == 422
