# tests/test_inventory_api.py


def test_inventory_stock(client):
    item = client.post("/api/inventory", json={"item_name": "Drop cable 100m", "quantity_alert": 5}).json()["data"]

    response = client.post(f"/api/inventory/{item['id']}/movements", json={"log_type": "in", "quantity": 10})
    assert response.status_code == 201
    assert response.json()["on_hand"] == 10
    assert response.json()["data"]["requested_by"] == "admin"

    response = client.post(f"/api/inventory/{item['id']}/movements", json={"log_type": "OUT", "quantity": 11})
    assert response.status_code == 422
    assert response.json()["message"] == "Not enough stock on hand."

    client.post(f"/api/inventory/{item['id']}/movements", json={"log_type": "OUT", "quantity": 6})
    low = client.get("/api/inventory/low-stock").json()["data"]
    assert [i["item_name"] for i in low] == ["Drop cable 100m"]
    assert client.get("/api/inventory").json()["data"][0]["on_hand"] == 4


def test_inventory_categories_unique(client):
    assert client.post("/api/inventory/categories", json={"name": "Cables"}).status_code == 201
    assert client.post("/api/inventory/categories", json={"name": "Cables"}).status_code == 422
    assert client.get("/api/inventory/categories").json()["count"] == 1
