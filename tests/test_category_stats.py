from collections import Counter

from assettrack.categories.stats import bucket_key, summarize
from assettrack.extensions import db
from assettrack.models import AssetCategory, AssetType, CatalogProduct


def _row(name, model_number="", **extra):
    return {"name": name, "model_number": model_number, **extra}


def test_buckets_sharing_a_model_number_are_summed():
    buckets = {
        bucket_key("CX-1", "Camera-X"): Counter(total=2, inUse=1),
        bucket_key("cx-1 ", "Dome"): Counter(total=1, faulty=1),
        bucket_key("RD-9", "Reader"): Counter(total=5),
    }
    [row] = summarize([_row("Camera-X", "CX-1")], buckets)
    assert row["total"] == 3
    assert row["inUse"] == 1
    assert row["faulty"] == 1
    assert row["inStore"] == 1


def test_name_is_the_fallback_when_model_number_is_blank():
    buckets = {
        bucket_key("N/A", "Lens"): Counter(total=2),
        bucket_key("LN-2", "lens"): Counter(total=1, disposed=1),
    }
    [row] = summarize([_row("LENS", "n/a")], buckets)
    assert row["total"] == 3
    assert row["disposed"] == 1
    assert row["inStore"] == 2


def test_duplicate_names_keep_the_first_row_and_count_each_bucket_once():
    buckets = {
        bucket_key("CX-1", "Camera-X"): Counter(total=2),
        bucket_key("CX-2", "Camera-X"): Counter(total=4, scrapped=1),
    }
    rows = [
        _row("Camera-X", "CX-1", path="Alpha > Cams > Camera-X"),
        _row("camera-x ", "CX-2", path="Beta > Misc > camera-x"),
        _row("Camera-X", "", path="Gamma > Misc > Camera-X"),
    ]
    [row] = summarize(rows, buckets)
    assert row["path"] == "Alpha > Cams > Camera-X"
    assert row["total"] == 6
    assert row["scrapped"] == 1
    assert row["inStore"] == 5


def test_in_store_never_goes_negative():
    buckets = {bucket_key("X", "x"): Counter(total=1, inUse=1, faulty=1)}
    [row] = summarize([_row("x", "X")], buckets)
    assert row["inStore"] == 0


def _build_catalog(app, seeded):
    with app.app_context():
        alpha = AssetCategory(name="Alpha")
        cams = AssetType(name="Cams")
        alpha.types.append(cams)
        camera = CatalogProduct(name="Camera-X", model_number="CX-1")
        cams.products.append(camera)
        pro = CatalogProduct(name="Camera-X Pro")
        lens = CatalogProduct(name="Lens")
        cap = CatalogProduct(name="Lens Cap")
        camera.children.append(pro)
        pro.children.append(lens)
        lens.children.append(cap)

        beta = AssetCategory(name="Beta", store_id=seeded["it"])
        misc = AssetType(name="Misc")
        beta.types.append(misc)
        misc.products.append(CatalogProduct(name="camera-x ", model_number="cx-1"))
        misc.products.append(CatalogProduct(name="Dome", model_number="CX-1"))

        hidden = AssetCategory(name="NOC only", store_id=seeded["noc"])
        hidden_type = AssetType(name="Switches")
        hidden.types.append(hidden_type)
        hidden_type.products.append(CatalogProduct(name="Core Switch"))

        db.session.add_all([alpha, beta, hidden])
        db.session.commit()


def test_stats_endpoint(admin_client, app, seeded, make_asset):
    _build_catalog(app, seeded)
    make_asset("Cam 1", seeded["it"], model_number="CX-1", product_name="Camera-X", status="New")
    make_asset("Cam 2", seeded["lab"], model_number="cx-1", product_name="camera-x", status="In Use",
               assigned_to_id=seeded["tech"])
    make_asset("Cam 3", seeded["it"], model_number="CX-1", status="Faulty")
    make_asset("Lens 1", seeded["it"], model_number="N/A", product_name="Lens", status="Used")
    make_asset("NOC cam", seeded["noc"], model_number="CX-1", product_name="Camera-X")

    resp = admin_client.get("/api/asset-categories/stats")
    assert resp.status_code == 200
    rows = {row["name"]: row for row in resp.get_json()}

    assert list(rows) == ["Camera-X", "Camera-X Pro", "Lens", "Lens Cap", "Dome"]
    assert rows["Lens Cap"]["path"] == "Alpha > Cams > Camera-X > Camera-X Pro > Lens > Lens Cap"
    assert rows["Lens Cap"]["hierarchy"] == "Alpha > Cams > Camera-X > Camera-X Pro > Lens"

    camera = rows["Camera-X"]
    assert camera["categoryName"] == "Alpha"
    assert (camera["total"], camera["inUse"], camera["faulty"], camera["inStore"]) == (3, 1, 1, 1)
    assert rows["Dome"]["total"] == 3
    assert (rows["Lens"]["total"], rows["Lens"]["inStore"]) == (1, 1)
    assert rows["Lens Cap"]["total"] == 0


def test_category_delete_is_blocked_while_assets_use_it(admin_client, app, seeded, make_asset):
    with app.app_context():
        category = AssetCategory(name="Reader", store_id=seeded["it"])
        db.session.add(category)
        db.session.commit()
        category_id = category.id
    make_asset("Card reader", seeded["it"], category="Reader")

    resp = admin_client.delete(f"/api/asset-categories/{category_id}")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot delete category. It contains 1 assets."


def test_duplicate_category_in_store(admin_client, seeded):
    assert admin_client.post("/api/asset-categories", json={"name": "Network"}).status_code == 201
    resp = admin_client.post("/api/asset-categories", json={"name": "network"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Category already exists in this store"
