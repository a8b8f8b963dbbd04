from assettrack.extensions import db
from assettrack.models import Asset, ActivityLog


def _names(resp):
    return sorted(item["name"] for item in resp.get_json()["items"])


def test_admin_sees_only_own_store_and_children(admin_client, seeded, make_asset):
    make_asset("IT camera", seeded["it"])
    make_asset("Lab reader", seeded["lab"])
    make_asset("NOC switch", seeded["noc"])

    resp = admin_client.get("/api/assets")
    assert resp.status_code == 200
    assert _names(resp) == ["IT camera", "Lab reader"]
    assert resp.get_json()["total"] == 2


def test_store_filter_cannot_leave_the_scope(admin_client, seeded, make_asset):
    make_asset("IT camera", seeded["it"])
    make_asset("Lab reader", seeded["lab"])
    make_asset("NOC switch", seeded["noc"])

    assert _names(admin_client.get(f"/api/assets?store={seeded['lab']}")) == ["Lab reader"]
    assert _names(admin_client.get(f"/api/assets?store={seeded['noc']}")) == []


def test_location_filter_matches_substring(admin_client, seeded, make_asset):
    make_asset("Cam A", seeded["it"], location="Dock 1")
    make_asset("Cam B", seeded["it"], location="Roof")

    assert _names(admin_client.get("/api/assets?location=dock")) == ["Cam A"]


def test_out_of_scope_asset_is_not_found(admin_client, seeded, make_asset):
    asset_id = make_asset("NOC switch", seeded["noc"])
    assert admin_client.get(f"/api/assets/{asset_id}").status_code == 404


def test_list_requires_login(app, seeded):
    resp = app.test_client().get("/api/assets")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Not authorized, please log in"


def test_create_rejects_duplicate_serial_in_store(admin_client, seeded):
    payload = {"name": "Dome Camera", "serial_number": "SN-100", "status": "New"}
    first = admin_client.post("/api/assets", json=payload)
    assert first.status_code == 201
    body = first.get_json()
    assert body["store"]["id"] == seeded["it"]
    assert body["uniqueId"].startswith("CAM")
    assert [h["action"] for h in body["history"]] == ["Created"]

    second = admin_client.post("/api/assets", json=payload)
    assert second.status_code == 400
    assert "already exists" in second.get_json()["message"]


def test_create_validation_error(admin_client, seeded):
    resp = admin_client.post("/api/assets", json={"serial_number": "SN-1"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Validation failed"
    assert "name" in body["errors"]


def test_assign_to_technician(app, admin_client, seeded, make_asset):
    asset_id = make_asset("Door Controller", seeded["it"], status="New")

    resp = admin_client.post(
        "/api/assets/assign",
        json={"assetId": asset_id, "technicianId": seeded["tech"], "ticketNumber": "T-77"},
    )
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body["status"] == "In Use"
    assert body["assigned_to"]["id"] == seeded["tech"]
    assert body["previous_status"] == "New"

    with app.app_context():
        asset = db.session.get(Asset, asset_id)
        assert [h.action for h in asset.history] == ["Assigned (Admin)"]
        assert asset.history[0].ticket_number == "T-77"
        assert asset.state == "In Use"
        assert ActivityLog.query.filter_by(action="Assign Asset").count() == 1


def test_assign_rejects_faulty_asset(admin_client, seeded, make_asset):
    asset_id = make_asset("Reader", seeded["it"], status="Faulty")
    resp = admin_client.post("/api/assets/assign", json={"assetId": asset_id, "technicianId": seeded["tech"]})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot assign an asset that is Faulty"


def test_assign_external_then_unassign(admin_client, seeded, make_asset):
    asset_id = make_asset("Switch", seeded["lab"], status="Used")

    resp = admin_client.post(
        "/api/assets/assign",
        json={"assetId": asset_id, "otherRecipient": {"name": "Acme Contractor", "phone": "555"}},
    )
    assert resp.status_code == 200
    assert resp.get_json()["assigned_to_external"]["name"] == "Acme Contractor"
    assert resp.get_json()["statusLabel"]["label"] == "In Use"

    resp = admin_client.post("/api/assets/unassign", json={"assetId": asset_id})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["assigned_to_external"] is None
    assert body["status"] == "Used"
    assert [h["action"] for h in body["history"]][-1] == "Unassigned (Admin)"


def test_technician_return_request_flow(admin_client, tech_client, seeded, make_asset):
    asset_id = make_asset("Reader", seeded["it"], status="New")

    assert tech_client.post("/api/assets/collect", json={"assetId": asset_id}).status_code == 200
    mine = tech_client.get("/api/assets/my").get_json()
    assert [a["id"] for a in mine] == [asset_id]

    resp = tech_client.post(
        "/api/assets/return-request",
        json={"assetId": asset_id, "condition": "faulty", "notes": "cracked lens"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["asset"]["return_request"]["condition"] == "Faulty"

    pending = admin_client.get("/api/assets/return-pending").get_json()
    assert [a["id"] for a in pending] == [asset_id]

    resp = admin_client.post("/api/assets/return-approve", json={"assetId": asset_id})
    assert resp.status_code == 200
    asset = resp.get_json()["asset"]
    assert asset["status"] == "Faulty"
    assert asset["assigned_to"] is None
    assert asset["return_pending"] is False
    assert [h["action"] for h in asset["history"]] == [
        "Collected/New",
        "Return Requested/Faulty",
        "Returned/Faulty",
    ]


def test_technician_cannot_use_admin_routes(tech_client, seeded, make_asset):
    asset_id = make_asset("Reader", seeded["it"])
    resp = tech_client.post("/api/assets/bulk-delete", json={"ids": [asset_id]})
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Not authorized as an admin"


def test_bulk_update_keeps_state_in_sync(app, admin_client, seeded, make_asset):
    ids = [make_asset(f"Cam {i}", seeded["it"], status="New") for i in range(3)]
    outside = make_asset("NOC cam", seeded["noc"], status="New")

    resp = admin_client.post(
        "/api/assets/bulk-update",
        json={"ids": ids + [outside], "updates": {"status": "Faulty"}},
    )
    assert resp.status_code == 200
    assert resp.get_json()["updated"] == 3

    with app.app_context():
        states = {a.id: a.state for a in Asset.query.all()}
    assert all(states[i] == "Faulty" for i in ids)
    assert states[outside] == "New"


def test_bulk_update_rejects_a_bad_store(app, admin_client, seeded, make_asset):
    asset_id = make_asset("Cam", seeded["it"])

    resp = admin_client.post(
        "/api/assets/bulk-update", json={"ids": [asset_id], "updates": {"store": "abc"}}
    )
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid store"
    with app.app_context():
        assert db.session.get(Asset, asset_id).store_id == seeded["it"]


def test_bulk_delete_is_scoped(app, admin_client, seeded, make_asset):
    mine = make_asset("Cam", seeded["it"])
    other = make_asset("Cam", seeded["noc"])

    resp = admin_client.post("/api/assets/bulk-delete", json={"ids": [mine, other]})
    assert resp.get_json()["deleted"] == 1
    with app.app_context():
        assert db.session.get(Asset, mine) is None
        assert db.session.get(Asset, other) is not None


def test_list_flags_duplicate_serials(admin_client, seeded, make_asset):
    make_asset("Cam A", seeded["it"], serial_number="DUP-1")
    make_asset("Cam B", seeded["it"], serial_number="DUP-1")
    make_asset("Cam C", seeded["it"], serial_number="UNIQ-1")

    items = admin_client.get("/api/assets").get_json()["items"]
    flags = {item["name"]: item["isDuplicate"] for item in items}
    assert flags == {"Cam A": True, "Cam B": True, "Cam C": False}


def test_export_is_an_xlsx_download(admin_client, seeded, make_asset):
    make_asset("Cam", seeded["it"])
    resp = admin_client.get("/api/assets/export")
    assert resp.status_code == 200
    assert resp.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert resp.data[:2] == b"PK"
