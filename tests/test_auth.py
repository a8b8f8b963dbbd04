PASSWORD = "secret123"


def test_login_returns_user_with_store(app, seeded):
    client = app.test_client()
    resp = client.post("/api/auth/login", json={"email": "IT@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["role"] == "Admin"
    assert body["assignedStore"]["id"] == seeded["it"]
    assert body["assignedStore"]["name"] == "IT ASSET"

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.get_json()["email"] == "it@example.com"


def test_login_by_username(app, seeded):
    from assettrack.extensions import db
    from assettrack.models import User

    with app.app_context():
        db.session.get(User, seeded["tech"]).username = "tina"
        db.session.commit()

    resp = app.test_client().post("/api/auth/login", json={"email": "tina", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Tina Tech"


def test_bad_credentials(app, seeded):
    client = app.test_client()
    resp = client.post("/api/auth/login", json={"email": "it@example.com", "password": "wrong-pass"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid credentials"
    assert client.get("/api/auth/me").status_code == 401


def test_logout_ends_the_session(admin_client):
    assert admin_client.post("/api/auth/logout").status_code == 200
    assert admin_client.get("/api/auth/me").status_code == 401


def test_verify_password(admin_client):
    assert admin_client.post("/api/auth/verify-password", json={"password": PASSWORD}).status_code == 200
    assert admin_client.post("/api/auth/verify-password", json={"password": "nope"}).status_code == 401


def test_unknown_route_is_json(app):
    resp = app.test_client().get("/api/nowhere")
    assert resp.status_code == 404
    assert "message" in resp.get_json()


def test_health(app):
    assert app.test_client().get("/api/health").get_json() == {"status": "ok"}
