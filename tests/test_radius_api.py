# tests/test_radius_api.py
import json

from fibersync.core.audit import AUDIT_LOG_FILE


def test_radius_config_never_returns_password(client):
    response = client.post("/api/radius/config", json={
        "ssl_type": "https", "ip": "10.0.0.9", "port": 443, "username": "api", "password": "topsecret",
    })
    assert response.status_code == 201
    assert "password" not in response.json()

    listed = client.get("/api/radius/config").json()
    assert listed[0]["ip"] == "10.0.0.9"
    assert "password" not in listed[0]


def test_manual_disconnect_without_config_is_audited(client):
    response = client.post("/api/radius/disconnect", json={"username": "delacruz09171234567", "account_no": "0001"})
    assert response.json()["status"] == "error"

    with open(AUDIT_LOG_FILE, encoding="utf-8") as fh:
        entries = [json.loads(line) for line in fh if line.strip()]
    assert any(e["action"] == "RADIUS_DISCONNECT" and e["status"] == "failure" for e in entries)
