def create_item(client, **overrides):
    payload = {
        "itemCode": "THR-MANUAL-1",
        "productType": "THREAD",
        "description": "White Cotton Thread (RAW)",
        "unitOfMeasure": "meters",
    }
    payload.update(overrides)
    resp = client.post("/api/inventory", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_transaction(client, item_id, transaction_type, quantity, unit_cost=None):
    body = {"transactionType": transaction_type, "quantity": quantity}
    if unit_cost is not None:
        body["unitCost"] = unit_cost
    return client.post(f"/api/inventory/{item_id}/transactions", json=body)


def test_weighted_average_example(client):
    item = create_item(client)
    assert item["currentQuantity"] == 0
    assert item["costPerUnit"] == 0

    resp = add_transaction(client, item["id"], "PURCHASE", 100, 10)
    assert resp.status_code == 201
    body = resp.json()
    assert body["inventoryItem"]["currentQuantity"] == 100
    assert body["inventoryItem"]["costPerUnit"] == 10.0
    assert body["transaction"]["remainingQuantity"] == 100

    resp = add_transaction(client, item["id"], "PURCHASE", 50, 16)
    body = resp.json()
    assert body["inventoryItem"]["currentQuantity"] == 150
    assert body["inventoryItem"]["costPerUnit"] == 12.0
    assert body["inventoryItem"]["salePrice"] == 14.4

    resp = add_transaction(client, item["id"], "SALES", 200)
    assert resp.status_code == 400
    error = resp.json()
    assert error["code"] == "INSUFFICIENT_QUANTITY"
    assert error["details"] == {"inventoryId": item["id"], "available": 150, "requested": 200}

    assert client.get(f"/api/inventory/{item['id']}").json()["currentQuantity"] == 150
    assert len(client.get(f"/api/inventory/{item['id']}/transactions").json()) == 2


def test_outbound_transaction_records_negative_effect(client):
    item = create_item(client)
    add_transaction(client, item["id"], "PURCHASE", 100, 10)
    resp = add_transaction(client, item["id"], "TRANSFER", 40)
    assert resp.status_code == 201
    transaction = resp.json()["transaction"]
    assert transaction["quantity"] == -40
    assert transaction["remainingQuantity"] == 60
    assert transaction["unitCost"] == 10.0


def test_zero_quantity_is_rejected(client):
    item = create_item(client)
    resp = add_transaction(client, item["id"], "ADJUSTMENT", 0)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_invalid_transaction_type_is_a_400(client):
    item = create_item(client)
    resp = add_transaction(client, item["id"], "GIFT", 5)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_opening_quantity_is_posted_as_adjustment(client):
    item = create_item(client, currentQuantity=25, costPerUnit=4)
    assert item["currentQuantity"] == 25
    transactions = client.get(f"/api/inventory/{item['id']}/transactions").json()
    assert len(transactions) == 1
    assert transactions[0]["transactionType"] == "ADJUSTMENT"
    assert transactions[0]["remainingQuantity"] == 25


def test_duplicate_item_code(client):
    create_item(client)
    resp = client.post("/api/inventory", json={
        "itemCode": "THR-MANUAL-1", "productType": "THREAD", "description": "Other",
    })
    assert resp.status_code == 400


def test_put_with_new_quantity_posts_signed_adjustment(client):
    item = create_item(client, currentQuantity=50)
    resp = client.put(f"/api/inventory/{item['id']}", json={"currentQuantity": 35, "location": "Rack 4"})
    assert resp.status_code == 200
    assert resp.json()["currentQuantity"] == 35
    assert resp.json()["location"] == "Rack 4"

    latest = client.get(f"/api/inventory/{item['id']}/transactions").json()[0]
    assert latest["transactionType"] == "ADJUSTMENT"
    assert latest["quantity"] == -15
    assert latest["remainingQuantity"] == 35


def test_delete_blocked_while_transactions_exist(client):
    item = create_item(client)
    add_transaction(client, item["id"], "PURCHASE", 10, 1)
    resp = client.delete(f"/api/inventory/{item['id']}")
    assert resp.status_code == 400
    assert resp.json()["code"] == "HAS_DEPENDENTS"
    assert client.get(f"/api/inventory/{item['id']}").status_code == 200


def test_delete_without_transactions(client):
    item = create_item(client)
    assert client.delete(f"/api/inventory/{item['id']}").status_code == 204
    resp = client.get(f"/api/inventory/{item['id']}")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


def test_record_transaction_opens_new_item(client):
    resp = client.post("/api/inventory/transactions", json={
        "itemCode": "FAB-MANUAL-1",
        "description": "Lawn 60in",
        "productType": "FABRIC",
        "transactionType": "PURCHASE",
        "quantity": 80,
        "unitCost": 25,
    })
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["inventoryItem"]["itemCode"] == "FAB-MANUAL-1"
    assert body["inventoryItem"]["currentQuantity"] == 80
    assert body["inventoryItem"]["costPerUnit"] == 25.0
    assert body["transaction"]["remainingQuantity"] == 80


def test_record_transaction_against_existing_item(client):
    item = create_item(client)
    resp = client.post("/api/inventory/transactions", json={
        "inventoryId": item["id"], "transactionType": "PURCHASE", "quantity": 10, "unitCost": 3,
    })
    assert resp.status_code == 201
    assert resp.json()["inventoryItem"]["currentQuantity"] == 10


def test_record_transaction_needs_target(client):
    resp = client.post("/api/inventory/transactions", json={"transactionType": "PURCHASE", "quantity": 10})
    assert resp.status_code == 400


def test_failed_new_item_transaction_rolls_back_item(client):
    resp = client.post("/api/inventory/transactions", json={
        "itemCode": "THR-NEW", "description": "Grey Thread", "productType": "THREAD",
        "transactionType": "SALES", "quantity": 5,
    })
    assert resp.status_code == 400
    assert client.get("/api/inventory", params={"search": "THR-NEW"}).json() == []


def test_query_transactions_filters_and_pages(client):
    item = create_item(client)
    other = create_item(client, itemCode="THR-MANUAL-2", description="Black Cotton Thread (RAW)")
    for _ in range(3):
        add_transaction(client, item["id"], "PURCHASE", 10, 1)
    add_transaction(client, item["id"], "SALES", 5)
    add_transaction(client, other["id"], "PURCHASE", 1, 1)

    page = client.get("/api/inventory/transactions", params={"inventoryId": item["id"], "limit": 2}).json()
    assert page["total"] == 4
    assert len(page["items"]) == 2
    assert page["page"] == 1

    sales = client.get("/api/inventory/transactions", params={"type": "SALES"}).json()
    assert sales["total"] == 1
    assert sales["items"][0]["quantity"] == -5

    resp = client.get("/api/inventory/transactions", params={"type": "BOGUS"})
    assert resp.status_code == 400


def test_list_filters(client):
    empty = create_item(client, itemCode="T-EMPTY", description="Empty", minStockLevel=10)
    low = create_item(client, itemCode="T-LOW", description="Low", currentQuantity=5, minStockLevel=10)
    full = create_item(client, itemCode="F-FULL", productType="FABRIC", description="Full", currentQuantity=500)

    ids = lambda params: {row["id"] for row in client.get("/api/inventory", params=params).json()}
    assert ids({"type": "FABRIC"}) == {full["id"]}
    assert ids({"inStock": "true"}) == {low["id"], full["id"]}
    assert ids({"inStock": "false"}) == {empty["id"]}
    assert ids({"lowStock": "true"}) == {empty["id"], low["id"]}
    assert ids({"search": "t-low"}) == {low["id"]}


def test_stats(client):
    create_item(client, itemCode="T-1", description="A", currentQuantity=10, costPerUnit=2, minStockLevel=20)
    create_item(client, itemCode="F-1", productType="FABRIC", description="B", currentQuantity=4, costPerUnit=10)
    create_item(client, itemCode="F-2", productType="FABRIC", description="C")

    stats = client.get("/api/inventory/stats").json()
    assert stats["totalItems"] == 3
    assert stats["totalQuantity"] == 14
    assert stats["totalValue"] == 60.0
    assert stats["lowStockItems"] == 1
    assert stats["outOfStockItems"] == 1
    by_type = {row["productType"]: row for row in stats["byProductType"]}
    assert by_type["FABRIC"]["items"] == 2
    assert by_type["THREAD"]["value"] == 20.0


def test_source_event_cannot_be_posted_twice_by_hand(client, api_vendor):
    purchase = client.post("/api/thread-purchases", json={
        "vendorId": api_vendor["id"], "threadType": "Cotton", "quantity": 100, "unitPrice": 10,
    }).json()
    item = create_item(client)
    body = {"transactionType": "PURCHASE", "quantity": 100, "unitCost": 10, "threadPurchaseId": purchase["id"]}

    first = client.post("/api/inventory/transactions", json={**body, "inventoryId": item["id"]})
    assert first.status_code == 201, first.text

    second = client.post(f"/api/inventory/{item['id']}/transactions", json=body)
    assert second.status_code == 400
    assert second.json()["code"] == "VALIDATION_ERROR"
    assert second.json()["details"]["transactionId"] == first.json()["transaction"]["id"]

    minted = client.post("/api/inventory/add-thread-purchase", json={"threadPurchaseId": purchase["id"]})
    assert minted.status_code == 200
    assert minted.json()["existing"] is True

    transactions = client.get(f"/api/inventory/{item['id']}/transactions").json()
    assert len(transactions) == 1
    assert client.get(f"/api/inventory/{item['id']}").json()["currentQuantity"] == 100


def test_minted_source_rejects_manual_inbound(client, received_purchase, thread_item):
    resp = client.post(f"/api/inventory/{thread_item['id']}/transactions", json={
        "transactionType": "PURCHASE", "quantity": 5, "unitCost": 12.5,
        "threadPurchaseId": received_purchase["id"],
    })
    assert resp.status_code == 400
    assert client.get(f"/api/inventory/{thread_item['id']}").json()["currentQuantity"] == 1000

    adjustment = client.post(f"/api/inventory/{thread_item['id']}/transactions", json={
        "transactionType": "ADJUSTMENT", "quantity": -5, "threadPurchaseId": received_purchase["id"],
    })
    assert adjustment.status_code == 201
