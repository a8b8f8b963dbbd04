import logging

import pytest
from sqlalchemy.pool import StaticPool

from assettrack import create_app
from assettrack.extensions import db
from assettrack.models import (
    ROLE_ADMIN,
    ROLE_SUPER_ADMIN,
    ROLE_TECHNICIAN,
    Asset,
    Store,
    User,
)


PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        },
        "WTF_CSRF_ENABLED": False,
        "ASSET_LOCATION_FALLBACK": False,
        "LOG_DIR": str(tmp_path / "logs"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "BACKUP_DIR": str(tmp_path / "backups"),
    })
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    for handler in list(app.logger.handlers):
        if isinstance(handler, logging.FileHandler):
            app.logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def seeded(app):
    """
    Two main stores (IT with one child location, NOC) and one user per role.
    Returns the ids.
    """
    with app.app_context():
        it = Store(name="IT ASSET", is_main_store=True)
        noc = Store(name="NOC ASSET", is_main_store=True)
        db.session.add_all([it, noc])
        db.session.flush()
        lab = Store(name="IT Lab", parent_store_id=it.id)
        db.session.add(lab)
        db.session.flush()

        users = {
            "super": User(name="Root", email="root@example.com", role=ROLE_SUPER_ADMIN),
            "admin": User(name="IT Admin", email="it@example.com", role=ROLE_ADMIN, assigned_store_id=it.id),
            "noc_admin": User(name="NOC Admin", email="noc@example.com", role=ROLE_ADMIN, assigned_store_id=noc.id),
            "tech": User(name="Tina Tech", email="tech@example.com", role=ROLE_TECHNICIAN, assigned_store_id=it.id),
        }
        for user in users.values():
            user.set_password(PASSWORD)
            db.session.add(user)
        db.session.commit()

        return {
            "it": it.id,
            "lab": lab.id,
            "noc": noc.id,
            **{key: user.id for key, user in users.items()},
        }


def login(app, email, password=PASSWORD):
    client = app.test_client()
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def super_client(app, seeded):
    return login(app, "root@example.com")


@pytest.fixture
def admin_client(app, seeded):
    return login(app, "it@example.com")


@pytest.fixture
def tech_client(app, seeded):
    return login(app, "tech@example.com")


@pytest.fixture
def make_asset(app):
    def _make(name, store_id=None, **fields):
        with app.app_context():
            asset = Asset(name=name, store_id=store_id, **fields)
            db.session.add(asset)
            db.session.commit()
            return asset.id

    return _make
