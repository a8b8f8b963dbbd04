import json

import pytest

from assettrack.extensions import db
from assettrack.models import (
    ActivityLog,
    Asset,
    AssetCategory,
    AssetHistory,
    Pass,
    Permit,
    Product,
    PurchaseOrder,
    Request,
    Store,
    User,
    Vendor,
)
from assettrack.system import reset as reset_module
from assettrack.system.backup import build_backup_payload


PASSWORD = "secret123"


TRANSACTIONAL = (Asset, AssetHistory, Request, PurchaseOrder, Vendor, Pass, Permit, ActivityLog)


def _populate(app, seeded, store_key):
    store_id = seeded[store_key]
    with app.app_context():
        vendor = Vendor(name=f"Vendor {store_key}", store_id=store_id)
        db.session.add(vendor)
        db.session.flush()
        asset = Asset(name=f"Cam {store_key}", store_id=store_id, vendor_id=vendor.id,
                      assigned_to_id=seeded["tech"], status="In Use")
        asset.history.append(AssetHistory(action="Created"))
        db.session.add_all([
            asset,
            Request(item_name="Cable", requester_id=seeded["tech"], store_id=store_id),
            PurchaseOrder(po_number=f"PO-{store_key}", vendor_id=vendor.id, store_id=store_id),
            Pass(pass_number=f"GP-{store_key}", issued_to="Courier", store_id=store_id),
            Permit(permit_number=f"WP-{store_key}", title="Cabling", store_id=store_id),
            ActivityLog(action="Create Asset", store_id=store_id),
            Product(name=f"Product {store_key}", store_id=store_id),
            AssetCategory(name=f"Category {store_key}", store_id=store_id),
        ])
        db.session.commit()


def _count(app, model):
    with app.app_context():
        return model.query.count()


def test_full_reset_keeps_users_stores_and_catalogs(app, super_client, seeded):
    _populate(app, seeded, "it")
    _populate(app, seeded, "noc")

    resp = super_client.post(
        "/api/system/reset",
        json={"password": PASSWORD, "storeId": "all", "includeUsers": False},
    )
    assert resp.status_code == 200, resp.get_json()
    stats = resp.get_json()["stats"]
    assert stats["scope"] == "Full System"
    assert stats["usersDeleted"] == "No"
    assert stats["assetsDeleted"] == 2
    assert stats["vendorsDeleted"] == 2

    for model in TRANSACTIONAL:
        assert _count(app, model) == 0, model.__name__
    assert _count(app, User) == 4
    assert _count(app, Store) == 3
    assert _count(app, Product) == 2
    assert _count(app, AssetCategory) == 2


def test_store_reset_covers_children_only(app, super_client, seeded):
    _populate(app, seeded, "lab")
    _populate(app, seeded, "noc")

    resp = super_client.post(
        "/api/system/reset",
        json={"password": PASSWORD, "storeId": str(seeded["it"]), "includeUsers": False},
    )
    assert resp.status_code == 200

    with app.app_context():
        assert [a.name for a in Asset.query.all()] == ["Cam noc"]
        assert Vendor.query.one().store_id == seeded["noc"]
        assert PurchaseOrder.query.one().po_number == "PO-noc"


def test_reset_with_users_releases_held_assets(app, super_client, seeded):
    _populate(app, seeded, "noc")

    resp = super_client.post(
        "/api/system/reset",
        json={"password": PASSWORD, "storeId": str(seeded["it"]), "includeUsers": True},
    )
    assert resp.status_code == 200
    assert resp.get_json()["stats"]["usersDeleted"] == "Yes"

    with app.app_context():
        emails = sorted(u.email for u in User.query.all())
        assert emails == ["noc@example.com", "root@example.com"]
        asset = Asset.query.one()
        assert asset.assigned_to_id is None
        assert asset.status == "Used"
        assert asset.history[-1].action == "Unassigned (System)"
        assert Request.query.one().requester_id is None


def test_wrong_password_is_rejected(app, super_client, seeded):
    _populate(app, seeded, "it")
    resp = super_client.post("/api/system/reset", json={"password": "nope-nope", "storeId": "all"})
    assert resp.status_code == 401
    assert _count(app, Asset) == 1


def test_store_id_is_required(super_client):
    resp = super_client.post("/api/system/reset", json={"password": PASSWORD})
    assert resp.status_code == 400
    assert "storeId" in resp.get_json()["errors"]


def test_unknown_store_is_not_found(super_client):
    resp = super_client.post("/api/system/reset", json={"password": PASSWORD, "storeId": "424242"})
    assert resp.status_code == 404


def test_admin_cannot_reset(admin_client):
    resp = admin_client.post("/api/system/reset", json={"password": PASSWORD, "storeId": "all"})
    assert resp.status_code == 403


def test_concurrent_reset_is_refused(app, seeded):
    assert reset_module._reset_lock.acquire(blocking=False)
    try:
        with app.app_context(), pytest.raises(reset_module.ResetInProgress):
            reset_module.reset_data(None)
        assert reset_module.is_reset_running()
    finally:
        reset_module._reset_lock.release()
    assert not reset_module.is_reset_running()


def test_reset_route_refuses_while_another_runs(app, super_client, seeded):
    _populate(app, seeded, "it")
    assert reset_module._reset_lock.acquire(blocking=False)
    try:
        resp = super_client.post("/api/system/reset", json={"password": PASSWORD, "storeId": "all"})
    finally:
        reset_module._reset_lock.release()
    assert resp.status_code == 429
    assert _count(app, Asset) == 1


def test_reset_request_and_cancel(app, admin_client, super_client, seeded):
    resp = admin_client.post("/api/system/request-reset")
    assert resp.status_code == 200

    flagged = super_client.get("/api/stores?deletionRequested=true").get_json()
    assert [s["id"] for s in flagged] == [seeded["it"]]
    assert flagged[0]["deletionRequestedBy"] == "IT Admin (it@example.com)"

    resp = super_client.post("/api/system/cancel-reset", json={"storeId": seeded["it"]})
    assert resp.status_code == 200
    with app.app_context():
        assert db.session.get(Store, seeded["it"]).deletion_requested is False


def test_backup_payload_covers_every_table(app, seeded):
    _populate(app, seeded, "it")
    with app.app_context():
        payload = build_backup_payload()
    assert {"stores", "users", "assets", "asset_history", "vendors"} <= set(payload["tables"])
    assert len(payload["tables"]["assets"]) == 1
    json.dumps(payload, default=str)


def test_backup_endpoint_writes_a_file(app, admin_client, seeded, tmp_path):
    resp = admin_client.post("/api/system/backup")
    assert resp.status_code == 200
    path = resp.get_json()["path"]
    assert path.startswith(str(tmp_path / "backups"))
    with open(path, encoding="utf-8") as fh:
        assert "tables" in json.load(fh)
