import io


from assettrack.extensions import db
from assettrack.models import Asset, PurchaseOrder, Vendor, utcnow
from assettrack.numbering import next_sequence_number


YEAR = utcnow().year


# ----------------------------
# Vendors
# ----------------------------

def test_vendor_crud(admin_client, seeded):
    resp = admin_client.post(
        "/api/vendors",
        json={"name": "Acme Supplies", "taxId": "TX-1", "contactPerson": "Ann", "status": "Active"},
    )
    assert resp.status_code == 201
    vendor = resp.get_json()
    assert vendor["store"] == seeded["it"]
    assert vendor["taxId"] == "TX-1"

    resp = admin_client.put(f"/api/vendors/{vendor['id']}", json={"phone": "555-0100"})
    assert resp.get_json()["phone"] == "555-0100"
    assert resp.get_json()["contactPerson"] == "Ann"

    assert [v["name"] for v in admin_client.get("/api/vendors").get_json()] == ["Acme Supplies"]


def test_vendor_uniqueness_is_per_store(admin_client, seeded, app):
    admin_client.post("/api/vendors", json={"name": "Acme", "taxId": "TX-9"})

    resp = admin_client.post("/api/vendors", json={"name": "ACME"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Vendor with this name already exists in this store"

    resp = admin_client.post("/api/vendors", json={"name": "Other", "taxId": "tx-9"})
    assert resp.get_json()["message"] == "Vendor with this Tax ID already exists in this store"

    noc_client = app.test_client()
    noc_client.post("/api/auth/login", json={"email": "noc@example.com", "password": "secret123"})
    assert noc_client.post("/api/vendors", json={"name": "Acme"}).status_code == 201


def test_vendor_delete_clears_references(app, admin_client, seeded, make_asset):
    vendor_id = admin_client.post("/api/vendors", json={"name": "Acme"}).get_json()["id"]
    asset_id = make_asset("Cam", seeded["it"], vendor_id=vendor_id)
    po_id = admin_client.post("/api/purchase-orders", json={"vendor": vendor_id}).get_json()["id"]

    assert admin_client.delete(f"/api/vendors/{vendor_id}").status_code == 200
    with app.app_context():
        assert db.session.get(Vendor, vendor_id) is None
        assert db.session.get(Asset, asset_id).vendor_id is None
        assert db.session.get(PurchaseOrder, po_id).vendor_id is None


def test_other_store_vendor_is_not_found(app, admin_client, seeded):
    with app.app_context():
        vendor = Vendor(name="NOC vendor", store_id=seeded["noc"])
        db.session.add(vendor)
        db.session.commit()
        vendor_id = vendor.id
    assert admin_client.get(f"/api/vendors/{vendor_id}").status_code == 404


# ----------------------------
# Purchase orders
# ----------------------------

def test_purchase_order_numbering_and_totals(admin_client, seeded):
    items = [
        {"description": "Camera", "quantity": 2, "unit_price": 150.5},
        {"description": "Cable", "quantity": 10, "unitPrice": "1.25"},
    ]
    first = admin_client.post("/api/purchase-orders", json={"items": items, "orderDate": "2026-01-15"})
    assert first.status_code == 201
    body = first.get_json()
    assert body["poNumber"] == f"PO-{YEAR}-0001"
    assert body["totalAmount"] == 313.5
    assert body["status"] == "Draft"
    assert body["orderDate"] == "2026-01-15"

    second = admin_client.post("/api/purchase-orders", json={"totalAmount": "99.99"})
    assert second.get_json()["poNumber"] == f"PO-{YEAR}-0002"
    assert second.get_json()["totalAmount"] == 99.99


def test_purchase_order_rejects_duplicate_number(admin_client, seeded):
    admin_client.post("/api/purchase-orders", json={"poNumber": "PO-CUSTOM"})
    resp = admin_client.post("/api/purchase-orders", json={"poNumber": "PO-CUSTOM"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "PO Number already exists"


def test_purchase_order_multipart_with_attachment(admin_client, seeded, app):
    resp = admin_client.post(
        "/api/purchase-orders",
        data={
            "items": '[{"description": "Switch", "quantity": 1, "unit_price": 400}]',
            "status": "Pending",
            "attachments": (io.BytesIO(b"%PDF-1.4"), "quote.pdf"),
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body["status"] == "Pending"
    assert body["totalAmount"] == 400
    [url] = body["attachments"]
    assert url.startswith("/uploads/po-") and url.endswith(".pdf")
    assert app.test_client().get(url).data == b"%PDF-1.4"


def test_purchase_order_bad_items(admin_client, seeded):
    resp = admin_client.post(
        "/api/purchase-orders",
        data={"items": "not json"},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid items format"


def test_purchase_order_filters(admin_client, seeded):
    admin_client.post("/api/purchase-orders", json={"orderDate": "2026-01-10", "status": "Approved"})
    admin_client.post("/api/purchase-orders", json={"orderDate": "2026-03-10"})

    in_range = admin_client.get("/api/purchase-orders?startDate=2026-01-01&endDate=2026-01-31").get_json()
    assert [po["orderDate"] for po in in_range] == ["2026-01-10"]
    approved = admin_client.get("/api/purchase-orders?status=Approved").get_json()
    assert len(approved) == 1
    assert admin_client.get("/api/purchase-orders?startDate=x&endDate=y").status_code == 400


def test_sequence_ignores_foreign_numbers(app, seeded):
    with app.app_context():
        db.session.add_all([
            PurchaseOrder(po_number=f"PO-{YEAR}-0007"),
            PurchaseOrder(po_number=f"PO-{YEAR}-CUSTOM"),
            PurchaseOrder(po_number="PO-1999-0042"),
        ])
        db.session.commit()
        assert next_sequence_number(PurchaseOrder.po_number, "PO") == f"PO-{YEAR}-0008"


# ----------------------------
# Stock requests
# ----------------------------

def test_stock_request_flow(admin_client, tech_client, seeded):
    resp = tech_client.post("/api/requests", json={"item_name": "Patch cable", "quantity": 5})
    assert resp.status_code == 201
    request_id = resp.get_json()["id"]
    assert resp.get_json()["store"] == seeded["it"]

    mine = tech_client.get("/api/requests/mine").get_json()
    assert [r["id"] for r in mine] == [request_id]

    listed = admin_client.get("/api/requests?q=tina").get_json()
    assert [r["item_name"] for r in listed] == ["Patch cable"]

    resp = admin_client.put(f"/api/requests/{request_id}", json={"status": "Approved"})
    assert resp.get_json()["status"] == "Approved"
    assert admin_client.put(f"/api/requests/{request_id}", json={"status": "Lost"}).status_code == 400


def test_technician_cannot_list_all_requests(tech_client):
    assert tech_client.get("/api/requests").status_code == 403


def test_stock_request_export(admin_client, tech_client, seeded):
    tech_client.post("/api/requests", json={"item_name": "Patch cable"})
    resp = admin_client.get("/api/requests/export")
    assert resp.status_code == 200
    assert resp.data[:2] == b"PK"


# ----------------------------
# Gate passes and work permits
# ----------------------------

def test_gate_pass_lifecycle(admin_client, tech_client, seeded):
    resp = tech_client.post(
        "/api/passes",
        json={
            "issuedTo": "Courier Co",
            "type": "Returnable",
            "validUntil": "2026-12-31",
            "items": [{"name": "Laptop", "serial_number": "LP-1", "quantity": 1}],
        },
    )
    assert resp.status_code == 201
    gate_pass = resp.get_json()
    assert gate_pass["passNumber"] == f"GP-{YEAR}-0001"
    assert gate_pass["type"] == "Returnable"
    assert gate_pass["items"][0]["serial_number"] == "LP-1"

    assert tech_client.put(f"/api/passes/{gate_pass['id']}/status", json={"status": "Approved"}).status_code == 403
    resp = admin_client.put(f"/api/passes/{gate_pass['id']}/status", json={"status": "Approved"})
    assert resp.get_json()["status"] == "Approved"

    assert admin_client.delete(f"/api/passes/{gate_pass['id']}").status_code == 200
    assert admin_client.get(f"/api/passes/{gate_pass['id']}").status_code == 404


def test_gate_pass_items_must_be_objects(tech_client, seeded):
    resp = tech_client.post("/api/passes", json={"issuedTo": "Courier", "items": ["Laptop"]})
    assert resp.status_code == 400


def test_work_permit_dates(admin_client, seeded):
    resp = admin_client.post(
        "/api/permits",
        json={"title": "Rack install", "startDate": "2026-05-02", "endDate": "2026-05-01"},
    )
    assert resp.status_code == 400
    assert "endDate" in resp.get_json()["errors"]

    resp = admin_client.post(
        "/api/permits",
        json={"title": "Rack install", "contractor": "Wire Bros", "startDate": "2026-05-01", "endDate": "2026-05-03"},
    )
    assert resp.status_code == 201
    permit = resp.get_json()
    assert permit["permitNumber"] == f"WP-{YEAR}-0001"
    assert permit["requestedBy"]["email"] == "it@example.com"
    assert permit["status"] == "Pending"
