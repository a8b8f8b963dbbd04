from assettrack.extensions import db
from assettrack.models import utcnow


def next_sequence_number(column, prefix: str, width: int = 4) -> str:
    """
    Next "<prefix>-<year>-0001" style number for ``column``. Only codes that
    follow the pattern count towards the sequence.
    """
    stem = f"{prefix}-{utcnow().year}-"
    max_num = 0
    existing = db.session.query(column).filter(column.like(f"{stem}%")).all()
    for (code,) in existing:
        suffix = (code or "")[len(stem):]
        if suffix.isdigit():
            max_num = max(max_num, int(suffix))
    return f"{stem}{max_num + 1:0{width}d}"
