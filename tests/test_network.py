# tests/test_network.py
from fibersync.models.network import Lcp


def test_lcp_pagination(client, db_session):
    for n in range(1, 13):
        db_session.add(Lcp(lcp_name=f"LCP-{n:02d}"))
    db_session.commit()

    body = client.get("/api/lcp", params={"page": 2, "per_page": 5}).json()

    assert [item["lcp_name"] for item in body["data"]] == ["LCP-06", "LCP-07", "LCP-08", "LCP-09", "LCP-10"]
    assert body["pagination"] == {
        "current_page": 2,
        "total_pages": 3,
        "total_items": 12,
        "items_per_page": 5,
        "has_next": True,
        "has_prev": True,
    }


def test_lcp_search(client, db_session):
    db_session.add(Lcp(lcp_name="LCP-NORTH"))
    db_session.add(Lcp(lcp_name="LCP-SOUTH"))
    db_session.commit()
    body = client.get("/api/lcp", params={"search": "NORTH"}).json()
    assert body["pagination"]["total_items"] == 1


def test_crud_routes_for_naps(client):
    response = client.post("/api/nap", json={"nap_name": "NAP-01"})
    assert response.status_code == 201
    nap_id = response.json()["data"]["id"]

    duplicate = client.post("/api/nap", json={"nap_name": "NAP-01"})
    assert duplicate.status_code == 422
    assert duplicate.json()["success"] is False

    response = client.put(f"/api/nap/{nap_id}", json={"nap_name": "NAP-02"})
    assert response.json()["data"]["nap_name"] == "NAP-02"

    assert client.get("/api/nap").json()["count"] == 1
    assert client.delete(f"/api/nap/{nap_id}").json()["message"] == "Nap deleted successfully"
    assert client.get(f"/api/nap/{nap_id}").status_code == 404


def test_vlan_and_port_routes(client):
    assert client.post("/api/vlans", json={"vlan_id": "V100", "value": 100}).status_code == 201
    assert client.post("/api/ports", json={"label": "Port 1", "port_id": "P1"}).status_code == 201
    assert client.get("/api/vlans").json()["data"][0]["value"] == 100
