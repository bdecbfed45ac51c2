# utils/uploads.py
"""Local-disk storage for complaint attachments and voice notes."""
import logging
import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

log = logging.getLogger("brosolve.uploads")

AUDIO_MIME_TYPES = {
    "audio/webm",
    "audio/wav",
    "audio/mpeg",
    "audio/ogg",
    "audio/mp3",
    "audio/mp4",
    "audio/x-m4a",
    "audio/m4a",
}


class UploadError(ValueError):
    """Raised when an uploaded file is rejected."""


def _unique_name(original):
    base = secure_filename((original or "").replace(" ", "_")) or "file"
    return f"{uuid.uuid4().hex}-{base}"


def _base_mimetype(file):
    return (file.mimetype or "").split(";")[0].strip().lower()


def save_file(file, subdir=None):
    """
    Persist one werkzeug FileStorage under UPLOAD_FOLDER[/subdir].
    Returns {"filename", "url", "mimetype"}.
    """
    root = current_app.config["UPLOAD_FOLDER"]
    target_dir = os.path.join(root, subdir) if subdir else root
    os.makedirs(target_dir, exist_ok=True)

    filename = _unique_name(file.filename)
    file.save(os.path.join(target_dir, filename))
    url = f"/uploads/{subdir}/{filename}" if subdir else f"/uploads/{filename}"
    log.info("Stored upload %s (%s)", url, file.mimetype)
    return {"filename": filename, "url": url, "mimetype": _base_mimetype(file)}


def save_attachments(files, limit=None):
    """Store at most `limit` (MAX_ATTACHMENTS) files; extra files are dropped."""
    limit = current_app.config.get("MAX_ATTACHMENTS", 3) if limit is None else limit
    kept = [f for f in files if f and f.filename][:limit]
    return [save_file(f) for f in kept]


def save_audio(file):
    if not file or not file.filename:
        raise UploadError("Audio file required")
    if _base_mimetype(file) not in AUDIO_MIME_TYPES:
        raise UploadError("Invalid audio file type. Allowed types: webm, wav, mpeg, ogg, mp3, mp4, m4a")
    return save_file(file, subdir="audio")


def request_files(req):
    """All uploaded files regardless of field name (file, files, attachments...)."""
    files = []
    for key in req.files:
        files.extend(req.files.getlist(key))
    return files
