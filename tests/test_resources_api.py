from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from app.config import AdditionalField, StoreSettings
from app.main import create_app

ORDERS = "/productOrderingManagement/v4/productOrder"
SPECS = "/productCatalogManagement/v4/productSpecification"
JSON_PATCH = {"Content-Type": "application/json-patch+json"}
MERGE_PATCH = {"Content-Type": "application/merge-patch+json"}


def test_create_assigns_identity_state_and_audit_fields(client):
    resp = client.post(ORDERS, json={"description": "first order", "updatedBy": "someone"})
    assert resp.status_code == 200
    body = resp.json()
    uuid.UUID(body["id"])
    assert body["href"] == f"{ORDERS}/{body['id']}"
    assert body["state"] == "acknowledged"
    assert body["revision"] == 0
    assert body["createdDate"]
    assert len(body["createdBy"]) == 10
    assert "updatedBy" not in body
    assert "updatedDate" not in body
    assert "version" not in body


def test_client_state_is_kept_on_create(client):
    body = client.post(ORDERS, json={"id": "o1", "state": "held"}).json()
    assert body["state"] == "held"


def test_duplicate_create_is_rejected_and_keeps_first(client):
    first = client.post(ORDERS, json={"id": "o1", "description": "first"})
    assert first.status_code == 200
    resp = client.post(ORDERS, json={"id": "o1", "description": "second"})
    assert resp.status_code == 400
    assert resp.json() == {"code": 400, "message": "[o1] already exists.", "status": "Bad Request"}

    stored = client.get(f"{ORDERS}/o1").json()
    assert stored["description"] == "first"
    assert stored["createdBy"] == first.json()["createdBy"]
    assert stored["createdDate"] == first.json()["createdDate"]


def test_create_requires_json_object(client):
    assert client.post(ORDERS, json=["a"]).status_code == 400
    resp = client.post(ORDERS, content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["code"] == 400


def test_first_read_advances_state_exactly_once(client):
    client.post(ORDERS, json={"id": "o1"})

    first = client.get(f"{ORDERS}/o1")
    assert first.status_code == 200
    assert first.json()["state"] == "completed"
    assert first.json()["revision"] == 1
    assert first.json()["updatedBy"]

    second = client.get(f"{ORDERS}/o1").json()
    assert second["state"] == "completed"
    assert second["revision"] == 1
    assert second["updatedDate"] == first.json()["updatedDate"]


def test_read_missing_document_returns_not_found_body(client):
    client.post(ORDERS, json={"id": "o1"})
    resp = client.get(f"{ORDERS}/missing")
    assert resp.status_code == 404
    assert resp.json() == {
        "code": 404,
        "message": "Repeat the request with new or updated Request-URI",
        "reason": "The server has not found anything matching the Request-URI",
        "status": "Not Found",
    }


def test_read_projects_fields_with_id_and_href(client):
    client.post(ORDERS, json={"id": "o1", "description": "d", "priority": 1})
    body = client.get(f"{ORDERS}/o1", params={"fields": "priority"}).json()
    assert body == {"id": "o1", "href": f"{ORDERS}/o1", "priority": 1}


def test_versioned_create_defaults_to_version_zero(client):
    body = client.post(SPECS, json={"id": "s1"}).json()
    assert body["version"] == "0"
    assert body["href"] == f"{SPECS}/s1:(version=0)"
    assert body["lifecycleStatus"] == "In design"


def test_versioned_create_takes_version_from_path_or_query(client):
    from_path = client.post("/catalog:(version=1.0)", json={"id": "c1"}).json()
    assert from_path["version"] == "1.0"
    assert from_path["href"] == "/catalog/c1:(version=1.0)"

    from_query = client.post("/catalog", params={"version": "3"}, json={"id": "c1"}).json()
    assert from_query["version"] == "3"


def test_only_latest_version_advances_on_read(client):
    client.post(SPECS, json={"id": "s1", "version": "1.0"})
    client.post(SPECS, json={"id": "s1", "version": "2.0"})

    latest = client.get(f"{SPECS}/s1").json()
    assert latest["version"] == "2.0"
    assert latest["lifecycleStatus"] == "Launched"

    older = client.get(f"{SPECS}/s1:(version=1.0)").json()
    assert older["lifecycleStatus"] == "In design"
    assert older["revision"] == 0

    by_query = client.get(f"{SPECS}/s1", params={"version": "1.0"}).json()
    assert by_query["version"] == "1.0"
    assert by_query["lifecycleStatus"] == "In design"


def test_merge_patch_stamps_and_blocks_later_advance(client):
    client.post(ORDERS, json={"id": "o1", "description": "d", "note": {"a": 1, "b": 2}})

    resp = client.patch(f"{ORDERS}/o1", json={"description": "changed", "note": {"a": None}}, headers=MERGE_PATCH)
    assert resp.status_code == 200
    body = resp.json()
    assert body["description"] == "changed"
    assert body["note"] == {"b": 2}
    assert body["revision"] == 1
    assert body["updatedDate"]

    read = client.get(f"{ORDERS}/o1").json()
    assert read["state"] == "acknowledged"
    assert read["revision"] == 1


def test_json_patch_leaves_audit_fields_alone_by_default(client):
    client.post(ORDERS, json={"id": "o1", "description": "d"})

    resp = client.patch(
        f"{ORDERS}/o1",
        json=[{"op": "replace", "path": "/description", "value": "z"}],
        headers=JSON_PATCH,
    )
    assert resp.status_code == 200
    assert resp.json()["description"] == "z"
    assert resp.json()["revision"] == 0
    assert "updatedDate" not in resp.json()

    read = client.get(f"{ORDERS}/o1").json()
    assert read["state"] == "completed"
    assert read["revision"] == 1


def test_array_body_selects_json_patch(client):
    client.post(ORDERS, json={"id": "o1"})
    resp = client.patch(f"{ORDERS}/o1", json=[{"op": "add", "path": "/extra", "value": True}])
    assert resp.status_code == 200
    assert resp.json()["extra"] is True


def test_failed_json_patch_leaves_document_unchanged(client):
    created = client.post(ORDERS, json={"id": "o1", "description": "d"}).json()

    resp = client.patch(
        f"{ORDERS}/o1",
        json=[
            {"op": "replace", "path": "/description", "value": "z"},
            {"op": "test", "path": "/description", "value": "nope"},
        ],
        headers=JSON_PATCH,
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == 400

    listed = client.get(ORDERS).json()
    assert listed == [created]


def test_patch_cannot_change_id(client):
    client.post(ORDERS, json={"id": "o1"})
    resp = client.patch(
        f"{ORDERS}/o1",
        json=[{"op": "replace", "path": "/id", "value": "o2"}],
        headers=JSON_PATCH,
    )
    assert resp.status_code == 400
    resp = client.patch(f"{ORDERS}/o1", json={"id": "o2"}, headers=MERGE_PATCH)
    assert resp.status_code == 400


def test_merge_patch_cannot_set_revision(client):
    client.post(ORDERS, json={"id": "o1"})

    first = client.patch(f"{ORDERS}/o1", json={"revision": 100}, headers=MERGE_PATCH)
    assert first.status_code == 200
    assert first.json()["revision"] == 1

    second = client.patch(f"{ORDERS}/o1", json={"revision": None}, headers=MERGE_PATCH)
    assert second.status_code == 200
    assert second.json()["revision"] == 2
    assert client.get(f"{ORDERS}/o1").json()["revision"] == 2


def test_json_patch_cannot_set_revision(client):
    client.post(ORDERS, json={"id": "o1"})

    replaced = client.patch(
        f"{ORDERS}/o1",
        json=[{"op": "replace", "path": "/revision", "value": 100}],
        headers=JSON_PATCH,
    )
    assert replaced.status_code == 200
    assert replaced.json()["revision"] == 0

    removed = client.patch(
        f"{ORDERS}/o1",
        json=[{"op": "remove", "path": "/revision"}],
        headers=JSON_PATCH,
    )
    assert removed.status_code == 200
    assert removed.json()["revision"] == 0

    read = client.get(f"{ORDERS}/o1").json()
    assert read["state"] == "completed"
    assert read["revision"] == 1


def test_patch_with_invalid_json_is_rejected(client):
    client.post(ORDERS, json={"id": "o1"})
    resp = client.patch(f"{ORDERS}/o1", content=b"{broken", headers=MERGE_PATCH)
    assert resp.status_code == 400


def test_patch_missing_document_is_not_found(client):
    client.post(ORDERS, json={"id": "o1"})
    resp = client.patch(f"{ORDERS}/missing", json={"a": 1}, headers=MERGE_PATCH)
    assert resp.status_code == 404


def test_delete_then_read_is_not_found(client):
    client.post(ORDERS, json={"id": "o1"})
    assert client.delete(f"{ORDERS}/o1").status_code == 204
    assert client.get(f"{ORDERS}/o1").status_code == 404
    assert client.delete(f"{ORDERS}/o1").status_code == 404


def test_delete_latest_version_keeps_older(client):
    client.post(SPECS, json={"id": "s1", "version": "1"})
    client.post(SPECS, json={"id": "s1", "version": "2"})
    assert client.delete(f"{SPECS}/s1").status_code == 204
    assert client.get(f"{SPECS}/s1").json()["version"] == "1"


def test_list_paginates_and_reports_totals(client):
    for seq in range(12):
        client.post("/troubleTicket", json={"id": f"t{seq:02d}", "seq": seq})

    first = client.get("/troubleTicket", params={"sort": "seq"})
    assert first.status_code == 200
    assert [doc["seq"] for doc in first.json()] == list(range(10))
    assert first.headers["X-Total-Count"] == "12"
    assert first.headers["Content-Range"] == "items 1-10/12"

    rest = client.get("/troubleTicket", params={"sort": "seq", "offset": "10", "limit": "50"})
    assert [doc["seq"] for doc in rest.json()] == [10, 11]
    assert rest.headers["Content-Range"] == "items 11-12/12"


def test_list_filter_sort_and_projection(client):
    for seq, severity in enumerate(["high", "low", "high", "high"]):
        client.post("/troubleTicket", json={"id": f"t{seq}", "seq": seq, "severity": severity})

    resp = client.get(
        "/troubleTicket",
        params={"filter": "$[?(@.severity == 'high')]", "sort": "-seq", "fields": "seq"},
    )
    assert resp.status_code == 200
    assert resp.json() == [
        {"id": "t3", "href": "/troubleTicket/t3", "seq": 3},
        {"id": "t2", "href": "/troubleTicket/t2", "seq": 2},
        {"id": "t0", "href": "/troubleTicket/t0", "seq": 0},
    ]
    assert resp.headers["X-Total-Count"] == "3"


def test_list_filter_with_double_quotes_and_numbers(client):
    client.post("/troubleTicket", json={"id": "c", "state": "completed", "n": 2})
    client.post("/troubleTicket", json={"id": "a", "state": "acknowledged", "n": 1})

    resp = client.get("/troubleTicket", params={"filter": '$[?(@.state == "completed")]'})
    assert resp.status_code == 200
    assert [doc["id"] for doc in resp.json()] == ["c"]
    assert resp.headers["X-Total-Count"] == "1"

    resp = client.get("/troubleTicket", params={"filter": "$[?(@.n > 1)]"})
    assert resp.status_code == 200
    assert [doc["id"] for doc in resp.json()] == ["c"]


def test_list_with_invalid_filter_is_rejected(client):
    client.post("/troubleTicket", json={"id": "t0"})
    resp = client.get("/troubleTicket", params={"filter": "$[?(@.severity =="})
    assert resp.status_code == 400


def test_list_of_unknown_domain_is_empty(client):
    resp = client.get("/neverWritten")
    assert resp.status_code == 200
    assert resp.json() == []
    assert resp.headers["X-Total-Count"] == "0"


def test_documents_expire_after_ttl_unless_read(client, clock, settings):
    client.post(ORDERS, json={"id": "idle"})
    client.post(ORDERS, json={"id": "busy"})

    clock.advance(settings.ttl_seconds / 2)
    assert client.get(f"{ORDERS}/busy").status_code == 200
    clock.advance(settings.ttl_seconds / 2)

    sweep = client.post("/_internal/evictions")
    assert sweep.json() == {"evicted": 1}
    assert client.get(f"{ORDERS}/idle").status_code == 404
    assert client.get(f"{ORDERS}/busy").status_code == 200


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"x-request-id": "req_fixed"})
    assert resp.headers["x-request-id"] == "req_fixed"
    assert resp.headers["x-trace-id"]


def test_additional_fields_are_added_on_create(settings):
    custom = StoreSettings(
        ttl_ms=settings.ttl_ms,
        sweep_interval_ms=settings.sweep_interval_ms,
        additional_fields=(AdditionalField("channel", "web"), AdditionalField("externalId")),
    )
    with TestClient(create_app(custom)) as client:
        body = client.post(ORDERS, json={"id": "o1"}).json()
    assert body["channel"] == "web"
    assert len(body["externalId"]) == 10


def test_json_patch_stamping_can_be_enabled(settings):
    custom = StoreSettings(
        ttl_ms=settings.ttl_ms,
        sweep_interval_ms=settings.sweep_interval_ms,
        json_patch_stamps_audit=True,
    )
    with TestClient(create_app(custom)) as client:
        client.post(ORDERS, json={"id": "o1"})
        body = client.patch(
            f"{ORDERS}/o1",
            json=[{"op": "add", "path": "/note", "value": "n"}],
            headers=JSON_PATCH,
        ).json()
    assert body["revision"] == 1
    assert body["updatedDate"]
