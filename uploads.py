# uploads.py - keeps saree photos in the upload folder and hands back URLs
from __future__ import annotations

import logging
import os
import time
import uuid

from flask import current_app, url_for
from werkzeug.utils import secure_filename

from errors import UploadError

logger = logging.getLogger(__name__)


def allowed_image(filename):
    if "." not in filename:
        return False
    ext = filename.rsplit(".", 1)[1].lower()
    return ext in current_app.config["ALLOWED_IMAGE_EXTENSIONS"]


def save_image(file_storage) -> str:
    """Stores one uploaded file and returns its public URL.

    Raises UploadError when the file is missing, has a disallowed
    extension, or cannot be written.
    """
    filename = secure_filename(file_storage.filename or "")
    if not filename:
        raise UploadError("Image has no file name.")
    if not allowed_image(filename):
        raise UploadError(f"{filename} is not an allowed image type.")

    # timestamp prefix keeps repeated uploads of the same file apart
    stored_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{filename}"
    folder = current_app.config["UPLOAD_FOLDER"]
    try:
        os.makedirs(folder, exist_ok=True)
        file_storage.save(os.path.join(folder, stored_name))
    except OSError as exc:
        raise UploadError(f"Failed to upload {filename}.") from exc

    return url_for("uploaded_file", filename=stored_name, _external=True)


def save_images(files) -> list[str]:
    """Saves every upload; a failed one is replaced by the placeholder image."""
    urls = []
    for file_storage in files:
        if file_storage is None or not file_storage.filename:
            continue
        try:
            urls.append(save_image(file_storage))
        except UploadError as exc:
            logger.warning("Image upload failed, using placeholder: %s", exc.message)
            urls.append(current_app.config["PLACEHOLDER_IMAGE_URL"])
    return urls
