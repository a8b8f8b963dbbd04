from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from flask_login import LoginManager


db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()

login_manager = LoginManager()
login_manager.session_protection = "basic"


def init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Not authorized, please log in"}), 401


@login_manager.user_loader
def load_user(user_id):
    from assettrack.models import User

    return db.session.get(User, int(user_id))
