import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from flask import current_app

from assettrack.extensions import db
from assettrack.models import utcnow


BACKUP_VERSION = 1


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def build_backup_payload() -> dict:
    """Every row of every mapped table, keyed by table name."""
    tables = {}
    for table in db.metadata.sorted_tables:
        rows = db.session.execute(table.select()).mappings().all()
        tables[table.name] = [dict(row) for row in rows]
    return {
        "meta": {"createdAt": utcnow().isoformat(), "version": BACKUP_VERSION},
        "tables": tables,
    }


def dump_backup(payload: dict) -> str:
    return json.dumps(payload, default=_json_default, indent=2)


def backup_database() -> Path:
    """
    Write a JSON dump of all tables to BACKUP_DIR and return the file path.
    Meant to run once a day via `flask backup-db`.
    """
    backup_dir = Path(current_app.config["BACKUP_DIR"])
    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = backup_dir / f"assettrack-backup-{timestamp}.json"
    backup_path.write_text(dump_backup(build_backup_payload()), encoding="utf-8")

    current_app.logger.info("Database backup written to %s", backup_path)
    return backup_path
