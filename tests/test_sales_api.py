def sell(client, customer_id, inventory_id, quantity, unit_price=20, **overrides):
    payload = {
        "customerId": customer_id,
        "items": [{"inventoryId": inventory_id, "quantity": quantity, "unitPrice": unit_price}],
    }
    payload.update(overrides)
    return client.post("/api/sales", json=payload)


def test_sale_posts_sales_transaction(client, api_customer, thread_item):
    resp = sell(client, api_customer["id"], thread_item["id"], 300, tax=100)
    assert resp.status_code == 201, resp.text
    order = resp.json()
    assert order["orderNumber"].startswith("SO-")
    assert order["totalAmount"] == 6100.0
    assert order["paymentStatus"] == "PENDING"
    assert order["items"][0]["subtotal"] == 6000.0
    assert order["items"][0]["productType"] == "THREAD"

    item = client.get(f"/api/inventory/{thread_item['id']}").json()
    assert item["currentQuantity"] == 700
    sales = client.get("/api/inventory/transactions", params={"type": "SALES"}).json()["items"]
    assert len(sales) == 1
    assert sales[0]["salesOrderId"] == order["id"]
    assert sales[0]["quantity"] == -300
    assert sales[0]["remainingQuantity"] == 700


def test_oversell_saves_nothing(client, api_customer, thread_item):
    resp = client.post("/api/sales", json={
        "customerId": api_customer["id"],
        "items": [
            {"inventoryId": thread_item["id"], "quantity": 600, "unitPrice": 20},
            {"inventoryId": thread_item["id"], "quantity": 600, "unitPrice": 20},
        ],
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "INSUFFICIENT_QUANTITY"
    assert client.get("/api/sales").json() == []
    assert client.get(f"/api/inventory/{thread_item['id']}").json()["currentQuantity"] == 1000


def test_sale_with_partial_payment_then_settlement(client, api_customer, thread_item):
    order = sell(client, api_customer["id"], thread_item["id"], 10, paymentAmount=50, paymentMode="CASH").json()
    assert order["totalAmount"] == 200.0
    assert order["paymentStatus"] == "PARTIAL"
    assert len(order["payments"]) == 1

    resp = client.post("/api/payments", json={"amount": 150, "mode": "ONLINE", "salesOrderId": order["id"]})
    assert resp.status_code == 201
    assert client.get(f"/api/sales/{order['id']}").json()["paymentStatus"] == "PAID"


def test_payment_cannot_exceed_total(client, api_customer, thread_item):
    resp = sell(client, api_customer["id"], thread_item["id"], 1, paymentAmount=500)
    assert resp.status_code == 400


def test_unknown_customer_and_item(client, api_customer, thread_item):
    assert sell(client, 999, thread_item["id"], 1).status_code == 404
    assert sell(client, api_customer["id"], 999, 1).status_code == 404


def test_empty_order_is_rejected(client, api_customer):
    resp = client.post("/api/sales", json={"customerId": api_customer["id"], "items": []})
    assert resp.status_code == 400


def test_order_numbers_are_sequential(client, api_customer, thread_item):
    first = sell(client, api_customer["id"], thread_item["id"], 1).json()["orderNumber"]
    second = sell(client, api_customer["id"], thread_item["id"], 1).json()["orderNumber"]
    assert int(second.rsplit("-", 1)[1]) == int(first.rsplit("-", 1)[1]) + 1


def test_customer_with_orders_cannot_be_deleted(client, api_customer, thread_item):
    sell(client, api_customer["id"], thread_item["id"], 1)
    resp = client.delete(f"/api/customers/{api_customer['id']}")
    assert resp.status_code == 400
    assert resp.json()["code"] == "HAS_DEPENDENTS"


def test_list_sales_by_customer(client, api_customer, thread_item):
    sell(client, api_customer["id"], thread_item["id"], 1)
    assert len(client.get("/api/sales", params={"customerId": api_customer["id"]}).json()) == 1
    assert client.get("/api/sales", params={"customerId": api_customer["id"] + 1}).json() == []


def test_update_recomputes_total_and_payment_status(client, api_customer, thread_item):
    order = sell(client, api_customer["id"], thread_item["id"], 10, paymentAmount=50).json()
    assert order["totalAmount"] == 200.0

    resp = client.patch(f"/api/sales/{order['id']}", json={"tax": 20, "discount": 10, "remarks": "Rush delivery"})
    assert resp.status_code == 200, resp.text
    updated = resp.json()
    assert updated["totalAmount"] == 210.0
    assert updated["remarks"] == "Rush delivery"
    assert updated["paymentStatus"] == "PARTIAL"

    resp = client.patch(f"/api/sales/{order['id']}", json={"paymentAmount": 210, "paymentMode": "ONLINE"})
    settled = resp.json()
    assert settled["paymentStatus"] == "PAID"
    assert len(settled["payments"]) == 1
    assert settled["payments"][0]["amount"] == 210.0
    assert settled["payments"][0]["mode"] == "ONLINE"


def test_update_rejects_overpayment_and_cancel_status(client, api_customer, thread_item):
    order = sell(client, api_customer["id"], thread_item["id"], 10).json()
    assert client.patch(f"/api/sales/{order['id']}", json={"paymentAmount": 500}).status_code == 400
    assert client.patch(f"/api/sales/{order['id']}", json={"paymentStatus": "CANCELLED"}).status_code == 400

    current = client.get(f"/api/sales/{order['id']}").json()
    assert current["payments"] == []
    assert current["paymentStatus"] == "PENDING"
    assert client.patch("/api/sales/999", json={"remarks": "x"}).status_code == 404


def test_cancel_returns_stock_through_the_ledger(client, api_customer, thread_item):
    order = sell(client, api_customer["id"], thread_item["id"], 300, paymentAmount=1000).json()
    assert client.get(f"/api/inventory/{thread_item['id']}").json()["currentQuantity"] == 700

    resp = client.delete(f"/api/sales/{order['id']}")
    assert resp.status_code == 204

    item = client.get(f"/api/inventory/{thread_item['id']}").json()
    assert item["currentQuantity"] == 1000
    assert item["costPerUnit"] == 12.5
    transactions = client.get(f"/api/inventory/{thread_item['id']}/transactions").json()
    returned = [t for t in transactions if t["transactionType"] == "ADJUSTMENT"]
    assert len(returned) == 1
    assert returned[0]["quantity"] == 300
    assert returned[0]["remainingQuantity"] == 1000
    assert returned[0]["salesOrderId"] == order["id"]

    cancelled = client.get(f"/api/sales/{order['id']}").json()
    assert cancelled["paymentStatus"] == "CANCELLED"
    assert cancelled["payments"] == []


def test_cancelled_order_is_final(client, api_customer, thread_item):
    order = sell(client, api_customer["id"], thread_item["id"], 5).json()
    assert client.delete(f"/api/sales/{order['id']}").status_code == 204
    again = client.delete(f"/api/sales/{order['id']}")
    assert again.status_code == 400
    assert again.json()["code"] == "VALIDATION_ERROR"
    assert client.patch(f"/api/sales/{order['id']}", json={"remarks": "late"}).status_code == 400
    assert client.get(f"/api/inventory/{thread_item['id']}").json()["currentQuantity"] == 1000
    assert client.delete("/api/sales/999").status_code == 404
