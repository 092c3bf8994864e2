import pytest


def test_healthz_is_public(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer wrong-token"},
    {"Authorization": "Basic test-admin-token"},
    {"Authorization": "Bearer"},
])
def test_admin_requires_token(client, headers):
    resp = client.get("/admin/applications", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"


def test_admin_does_not_set_session_cookie(client, admin_headers):
    resp = client.get("/admin/applications", headers=admin_headers)
    assert resp.status_code == 200
    assert "Set-Cookie" not in resp.headers


def test_ingestion_key_is_not_an_admin_token(client, make_application):
    _, key = make_application()
    resp = client.get("/admin/applications", headers={"Authorization": f"Bearer {key}"})
    assert resp.status_code == 401


def test_create_application_reveals_key_once(client, admin_headers):
    resp = client.post("/admin/applications",
                       json={"name": "Shop App", "slug": "shop-app", "owner_id": "acct-7"},
                       headers=admin_headers)
    assert resp.status_code == 201
    body = resp.get_json()
    key = body["api_key"]
    app_id = body["application"]["id"]
    assert key.startswith(body["application"]["api_key_prefix"])
    assert body["application"]["owner_id"] == "acct-7"
    assert body["application"]["is_active"] is True

    fetched = client.get(f"/admin/applications/{app_id}", headers=admin_headers).get_data(as_text=True)
    listed = client.get("/admin/applications", headers=admin_headers).get_data(as_text=True)
    assert key not in fetched
    assert key not in listed

    # and the revealed key works for ingestion
    ingest = client.post("/api/v1/feedback", json={"rating": 5}, headers={"X-API-Key": key})
    assert ingest.status_code == 201


def test_create_application_errors(client, admin_headers):
    first = client.post("/admin/applications", json={"name": "A", "slug": "dup"}, headers=admin_headers)
    assert first.status_code == 201

    dup = client.post("/admin/applications", json={"name": "B", "slug": "dup"}, headers=admin_headers)
    assert dup.status_code == 409
    assert dup.get_json()["field"] == "slug"

    invalid = client.post("/admin/applications", json={"name": "", "slug": "Bad Slug!"},
                          headers=admin_headers)
    assert invalid.status_code == 422
    assert set(invalid.get_json()["fields"]) == {"name", "slug"}

    not_json = client.post("/admin/applications", data="name=x", headers=admin_headers)
    assert not_json.status_code == 400


def test_rotate_key_over_http(client, admin_headers):
    created = client.post("/admin/applications", json={"name": "R", "slug": "rot"},
                          headers=admin_headers).get_json()
    old_key = created["api_key"]
    app_id = created["application"]["id"]

    rotated = client.post(f"/admin/applications/{app_id}/rotate-key", headers=admin_headers)
    assert rotated.status_code == 200
    new_key = rotated.get_json()["api_key"]
    assert new_key != old_key

    assert client.post("/api/v1/feedback", json={}, headers={"X-API-Key": old_key}).status_code == 401
    assert client.post("/api/v1/feedback", json={}, headers={"X-API-Key": new_key}).status_code == 201


def test_rotate_missing_application(client, admin_headers):
    assert client.post("/admin/applications/404/rotate-key", headers=admin_headers).status_code == 404


def test_deactivate_and_activate(client, admin_headers):
    created = client.post("/admin/applications", json={"name": "T", "slug": "toggle"},
                          headers=admin_headers).get_json()
    key, app_id = created["api_key"], created["application"]["id"]

    off = client.post(f"/admin/applications/{app_id}/deactivate", headers=admin_headers)
    assert off.get_json()["is_active"] is False
    assert client.post("/api/v1/feedback", json={}, headers={"X-API-Key": key}).status_code == 401

    active_only = client.get("/admin/applications?include_inactive=false", headers=admin_headers).get_json()
    assert active_only["items"] == []

    on = client.post(f"/admin/applications/{app_id}/activate", headers=admin_headers)
    assert on.get_json()["is_active"] is True
    assert client.post("/api/v1/feedback", json={}, headers={"X-API-Key": key}).status_code == 201


def test_unknown_route_is_json(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["code"] == 404
