import os
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename


IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp")


def save_upload(file_storage, prefix="file") -> str:
    """
    Store an uploaded file under UPLOAD_FOLDER and return its public URL.
    """
    filename = secure_filename(file_storage.filename or "")
    ext = os.path.splitext(filename)[1].lower()
    stored = f"{prefix}-{uuid.uuid4().hex[:12]}{ext}"

    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    file_storage.save(os.path.join(folder, stored))
    current_app.logger.info("Stored upload %s as %s", filename, stored)
    return f"/uploads/{stored}"


def save_image(data, prefix="product") -> str:
    # JSON clients send the URL of an image that is already stored
    if not isinstance(data, FileStorage):
        return str(data).strip()
    return save_upload(data, prefix=prefix)
