import os
import logging
from logging.handlers import RotatingFileHandler

import click
import sqlalchemy
from flask import Flask, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException

from .extensions import db, init_extensions


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _configure_logging(app):
    log_dir = app.config["LOG_DIR"]
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, app.config["LOG_FILE"])

    # attach once, create_app runs per test
    for handler in app.logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == os.path.abspath(log_path):
            return

    handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(logging.INFO)
    app.logger.addHandler(handler)
    app.logger.setLevel(logging.INFO)


def _register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"message": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def unhandled_error(e):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"message": "Server error"}), 500

    @app.teardown_request
    def log_teardown_error(exc):
        if exc is not None:
            app.logger.error("Request teardown with error: %s", exc)


def _register_commands(app):
    @app.cli.command("backup-db")
    def backup_db_command():
        """Write a JSON dump of every table to BACKUP_DIR (run daily from cron)."""
        from .system.backup import backup_database

        path = backup_database()
        click.echo(f"Backup written to {path}")

    @app.cli.command("seed")
    def seed_command():
        """Create default stores, the super admin and default categories."""
        from seed_data import seed

        seed()
        click.echo("Seed complete.")


def create_app(overrides=None):
    app = Flask(__name__)

    # Load config
    app.config.from_object("config.Config")
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)

    # Init ALL extensions in ONE place
    init_extensions(app)

    # Import models so Flask-Migrate can detect them
    from . import models  # noqa

    # Register blueprints
    from .auth import bp as auth_bp
    app.register_blueprint(auth_bp)

    from .assets import bp as assets_bp
    app.register_blueprint(assets_bp)

    from .categories import bp as categories_bp
    app.register_blueprint(categories_bp)

    from .products import bp as products_bp
    app.register_blueprint(products_bp)

    from .stores import bp as stores_bp
    app.register_blueprint(stores_bp)

    from .users import bp as users_bp
    app.register_blueprint(users_bp)

    from .vendors import bp as vendors_bp
    app.register_blueprint(vendors_bp)

    from .purchase_orders import bp as purchase_orders_bp
    app.register_blueprint(purchase_orders_bp)

    from .stock_requests import bp as stock_requests_bp
    app.register_blueprint(stock_requests_bp)

    from .passes import bp as passes_bp
    app.register_blueprint(passes_bp)

    from .permits import bp as permits_bp
    app.register_blueprint(permits_bp)

    from .system import bp as system_bp
    app.register_blueprint(system_bp)

    _register_error_handlers(app)
    _register_commands(app)

    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    # Ensure database/tables exist
    with app.app_context():
        try:
            db.create_all()
        except sqlalchemy.exc.SQLAlchemyError:
            app.logger.exception("Database initialization failed.")
            raise

    return app
