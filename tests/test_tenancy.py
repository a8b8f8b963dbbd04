from assettrack.extensions import db
from assettrack.models import Asset, Store
from assettrack.tenancy import TenantScope, get_store_ids


def test_store_ids_start_with_the_store_itself(app, seeded):
    with app.app_context():
        assert get_store_ids(seeded["it"]) == [seeded["it"], seeded["lab"]]
        assert get_store_ids(str(seeded["it"]))[0] == seeded["it"]


def test_store_without_children_is_a_singleton(app, seeded):
    with app.app_context():
        assert get_store_ids(seeded["noc"]) == [seeded["noc"]]
        assert get_store_ids(seeded["lab"]) == [seeded["lab"]]


def test_falsy_or_malformed_store_id_is_empty(app, seeded):
    with app.app_context():
        assert get_store_ids(None) == []
        assert get_store_ids("") == []
        assert get_store_ids("abc") == []
        assert get_store_ids(-4) == []


def test_children_are_one_level_only(app, seeded):
    with app.app_context():
        grandchild = Store(name="IT Lab Shelf", parent_store_id=seeded["lab"])
        db.session.add(grandchild)
        db.session.commit()
        assert grandchild.id not in get_store_ids(seeded["it"])


def test_scope_sentinels(app, seeded, make_asset):
    make_asset("A", seeded["it"])
    make_asset("B", seeded["noc"])
    make_asset("C", None)

    with app.app_context():
        def names(scope, **kwargs):
            query = scope.apply(Asset.query, Asset.store_id, **kwargs)
            return sorted(a.name for a in query.all())

        assert names(TenantScope.unrestricted()) == ["A", "B", "C"]
        assert names(TenantScope.deny_all()) == []
        assert names(TenantScope.for_store(seeded["noc"])) == ["B"]
        assert names(TenantScope.for_store(seeded["noc"]), include_global=True) == ["B", "C"]


def test_narrow_never_widens(app, seeded):
    with app.app_context():
        scope = TenantScope.for_store(seeded["it"])
        assert scope.narrow(None) is scope
        assert scope.narrow("all") is scope
        assert scope.narrow(seeded["lab"]).store_ids == (seeded["lab"],)
        assert scope.narrow(seeded["noc"]).is_denied
        assert scope.narrow("garbage").is_denied

        widened = TenantScope.unrestricted().narrow(seeded["it"])
        assert widened.store_ids == (seeded["it"], seeded["lab"])
        assert widened.active_store_id == seeded["it"]


def test_location_fallback_is_config_gated(app, seeded, make_asset):
    make_asset("Legacy", None, location="noc asset")

    with app.app_context():
        scope = TenantScope.for_store(seeded["noc"])
        assert scope.apply(Asset.query, Asset.store_id, Asset.location).count() == 0

        app.config["ASSET_LOCATION_FALLBACK"] = True
        assert scope.apply(Asset.query, Asset.store_id, Asset.location).count() == 1


def test_super_admin_active_store_header(super_client, seeded, make_asset):
    make_asset("IT cam", seeded["it"])
    make_asset("NOC cam", seeded["noc"])

    resp = super_client.get("/api/assets")
    assert resp.get_json()["total"] == 2

    resp = super_client.get("/api/assets", headers={"X-Active-Store": str(seeded["noc"])})
    assert [a["name"] for a in resp.get_json()["items"]] == ["NOC cam"]

    resp = super_client.get("/api/assets", headers={"X-Active-Store": "99999"})
    assert resp.get_json()["total"] == 0
