def test_vendor_crud(client):
    resp = client.post("/api/vendors", json={"name": "Kohinoor Threads", "contact": "042-1112223", "city": "Lahore"})
    assert resp.status_code == 201
    vendor = resp.json()
    assert vendor["createdAt"] is not None

    resp = client.patch(f"/api/vendors/{vendor['id']}", json={"email": "sales@kohinoor.example"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "sales@kohinoor.example"
    assert resp.json()["name"] == "Kohinoor Threads"

    assert [v["id"] for v in client.get("/api/vendors", params={"search": "lahore"}).json()] == [vendor["id"]]
    assert client.delete(f"/api/vendors/{vendor['id']}").status_code == 204
    assert client.get(f"/api/vendors/{vendor['id']}").status_code == 404


def test_vendor_requires_name_and_contact(client):
    resp = client.post("/api/vendors", json={"name": "No contact"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"][0]["field"] == "contact"


def test_name_cannot_be_cleared(client, api_vendor):
    resp = client.patch(f"/api/vendors/{api_vendor['id']}", json={"name": None})
    assert resp.status_code == 400


def test_customer_crud(client, api_customer):
    assert client.get(f"/api/customers/{api_customer['id']}").json()["name"] == "Sialkot Home Textiles"
    assert client.delete(f"/api/customers/{api_customer['id']}").status_code == 204
    assert client.get("/api/customers").json() == []


def test_classifications_are_unique_by_name(client):
    assert client.post("/api/thread-types", json={"name": "Polyester"}).status_code == 201
    resp = client.post("/api/thread-types", json={"name": "polyester"})
    assert resp.status_code == 400

    resp = client.post("/api/fabric-types", json={"name": "Khaddar", "units": "yards"})
    assert resp.status_code == 201
    assert resp.json()["units"] == "yards"
    assert [t["name"] for t in client.get("/api/fabric-types").json()] == ["Khaddar"]
