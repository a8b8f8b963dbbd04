from assettrack.extensions import db
from assettrack.models import Asset, Product


def _create_root(client, name="Camera"):
    resp = client.post("/api/products", json={"name": name})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _add_child(client, parent_id, name, **fields):
    return client.post(f"/api/products/{parent_id}/children", json={"name": name, **fields})


def test_create_root_product(admin_client, seeded):
    product = _create_root(admin_client)
    assert product["store"] == seeded["it"]
    assert product["children"] == []

    resp = admin_client.post("/api/products", json={"name": " camera "})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Product already exists"


def test_same_root_name_in_another_store(admin_client, app, seeded):
    _create_root(admin_client)
    noc_client = app.test_client()
    noc_client.post("/api/auth/login", json={"email": "noc@example.com", "password": "secret123"})
    assert noc_client.post("/api/products", json={"name": "Camera"}).status_code == 201


def test_nesting_is_limited_to_four_levels(admin_client, seeded):
    root = _create_root(admin_client)
    parent_id = root["id"]
    for name in ("Dome", "Indoor", "4MP"):
        tree = _add_child(admin_client, parent_id, name, model_number=f"M-{name}").get_json()
        node = tree
        while node["children"]:
            node = node["children"][-1]
        parent_id = node["id"]

    resp = _add_child(admin_client, parent_id, "Too deep")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Products can be nested at most 4 levels deep"

    flat = admin_client.get("/api/products/flat").get_json()
    assert [row["path"] for row in flat] == [
        "Camera",
        "Camera > Dome",
        "Camera > Dome > Indoor",
        "Camera > Dome > Indoor > 4MP",
    ]
    assert [row["depth"] for row in flat] == [1, 2, 3, 4]
    assert flat[-1]["isLeaf"] is True
    assert flat[-1]["model_number"] == "M-4MP"


def test_duplicate_child_names(admin_client, seeded):
    root = _create_root(admin_client)
    _add_child(admin_client, root["id"], "Dome")
    resp = _add_child(admin_client, root["id"], "DOME")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Child already exists"


def test_rename_updates_asset_product_names(app, admin_client, seeded, make_asset):
    root = _create_root(admin_client)
    asset_id = make_asset("Front door", seeded["it"], product_name="Camera")
    other_id = make_asset("NOC door", seeded["noc"], product_name="Camera")

    resp = admin_client.put(f"/api/products/{root['id']}", json={"name": "CCTV Camera"})
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "CCTV Camera"

    with app.app_context():
        assert db.session.get(Asset, asset_id).product_name == "CCTV Camera"
        assert db.session.get(Asset, other_id).product_name == "Camera"


def test_delete_is_blocked_while_assets_use_the_name(app, admin_client, seeded, make_asset):
    root = _create_root(admin_client)
    make_asset("Front door", seeded["it"], product_name="Camera")
    make_asset("Back door", seeded["lab"], product_name="Camera")

    resp = admin_client.delete(f"/api/products/{root['id']}")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot delete. Used by 2 assets."


def test_delete_removes_the_subtree(app, admin_client, seeded):
    root = _create_root(admin_client)
    _add_child(admin_client, root["id"], "Dome")
    assert admin_client.delete(f"/api/products/{root['id']}").status_code == 200
    with app.app_context():
        assert Product.query.count() == 0


def test_other_store_product_is_not_found(app, admin_client, seeded):
    with app.app_context():
        product = Product(name="NOC only", store_id=seeded["noc"])
        db.session.add(product)
        db.session.commit()
        product_id = product.id
    assert admin_client.get(f"/api/products/{product_id}").status_code == 404
    assert [p["name"] for p in admin_client.get("/api/products").get_json()] == []


def test_bulk_create_roots_and_children(admin_client, seeded):
    _create_root(admin_client)
    resp = admin_client.post("/api/products/bulk-create", json={"names": ["Camera", "Switch", " ", "Router"]})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Created 2 root products"
    assert [p["name"] for p in resp.get_json()["items"]] == ["Switch", "Router"]

    switch_id = resp.get_json()["items"][0]["id"]
    resp = admin_client.post(
        "/api/products/bulk-create", json={"names": ["8 port", "24 port", "8 port"], "parentId": switch_id}
    )
    assert [c["name"] for c in resp.get_json()["parent"]["children"]] == ["8 port", "24 port"]


def test_bulk_create_validation(admin_client, seeded):
    assert admin_client.post("/api/products/bulk-create", json={"names": []}).status_code == 400
    resp = admin_client.post("/api/products/bulk-create", json={"names": ["X"], "parentId": "abc"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid parent product"


def test_technicians_read_but_do_not_write(admin_client, tech_client, seeded):
    _create_root(admin_client)
    assert [p["name"] for p in tech_client.get("/api/products").get_json()] == ["Camera"]
    assert tech_client.post("/api/products", json={"name": "Router"}).status_code == 403
