from datetime import datetime, timedelta


def sell(client, customer_id, inventory_id, quantity, **overrides):
    payload = {
        "customerId": customer_id,
        "items": [{"inventoryId": inventory_id, "quantity": quantity, "unitPrice": 20}],
    }
    payload.update(overrides)
    resp = client.post("/api/sales", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_empty_summary(client):
    resp = client.get("/api/dashboard/summary")
    assert resp.status_code == 200
    assert resp.json() == {
        "inventory": {"totalValue": 0.0, "itemCount": 0, "lowStockCount": 0},
        "sales": {"last30Days": {"totalSales": 0.0, "orderCount": 0}, "pendingPayments": 0},
        "topSellingProducts": [],
        "productionStats": {},
    }


def test_summary_counts_stock_sales_and_production(client, api_customer, received_purchase, thread_item):
    sell(client, api_customer["id"], thread_item["id"], 10)
    cancelled = sell(client, api_customer["id"], thread_item["id"], 50)
    assert client.delete(f"/api/sales/{cancelled['id']}").status_code == 204
    old_order_date = (datetime.utcnow() - timedelta(days=45)).isoformat()
    sell(client, api_customer["id"], thread_item["id"], 5, orderDate=old_order_date, paymentAmount=100)

    resp = client.post("/api/fabric/production", json={
        "sourceThreadId": received_purchase["id"],
        "fabricType": "Lawn",
        "dimensions": "60in",
        "batchNumber": "B-100",
        "quantityProduced": 40,
        "threadUsed": 100,
        "productionCost": 400,
        "status": "PENDING",
    })
    assert resp.status_code == 201, resp.text

    summary = client.get("/api/dashboard/summary").json()
    assert summary["inventory"]["itemCount"] == 1
    assert summary["inventory"]["totalValue"] == 885 * 12.5
    assert summary["inventory"]["lowStockCount"] == 0
    assert summary["sales"]["last30Days"] == {"totalSales": 200.0, "orderCount": 1}
    assert summary["sales"]["pendingPayments"] == 1
    assert summary["topSellingProducts"] == [{"productType": "THREAD", "totalQuantity": 15, "totalValue": 300.0}]
    assert summary["productionStats"] == {"PENDING": 1}
