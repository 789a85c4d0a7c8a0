"""Durable image bucket backed by a directory and served by this app."""
import io
import logging
import os

from flask import Blueprint, abort, current_app, has_request_context, send_from_directory, url_for
from PIL import Image, UnidentifiedImageError  # type: ignore
from werkzeug.utils import secure_filename  # type: ignore

from .errors import PersistenceError

logger = logging.getLogger(__name__)

storage_bp = Blueprint('storage', __name__)


class ImageStorage:
    """Additive-only image bucket: uploads never overwrite an existing file."""

    def __init__(self, root: str, bucket: str, public_base_url: str | None = None):
        self.root = root
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip('/') if public_base_url else None

    @property
    def bucket_dir(self) -> str:
        return os.path.join(self.root, self.bucket)

    def upload(self, filename: str, data: bytes) -> str:
        """Verify ``data`` is an image and write it under ``filename``."""
        safe = secure_filename(filename)
        if not safe:
            raise PersistenceError(f"Invalid filename: {filename!r}")
        try:
            with Image.open(io.BytesIO(data)) as im:
                im.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise PersistenceError('Refusing to store unreadable image data', details=str(e)) from e
        try:
            os.makedirs(self.bucket_dir, exist_ok=True)
            with open(os.path.join(self.bucket_dir, safe), 'xb') as f:
                f.write(data)
        except FileExistsError as e:
            raise PersistenceError(f"Object already exists: {safe}") from e
        except OSError as e:
            raise PersistenceError('Failed to write image to storage', details=str(e)) from e
        logger.info('Stored %s (%d bytes) in bucket %s', safe, len(data), self.bucket)
        return safe

    def public_url(self, filename: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{self.bucket}/{filename}"
        if has_request_context():
            return url_for('storage.serve_file', bucket=self.bucket, filename=filename, _external=True)
        return f"/storage/{self.bucket}/{filename}"


def get_storage() -> ImageStorage:
    cfg = current_app.config
    return ImageStorage(
        root=cfg['STORAGE_DIR'],
        bucket=cfg['STORAGE_BUCKET'],
        public_base_url=cfg.get('STORAGE_PUBLIC_URL'),
    )


@storage_bp.route('/storage/<bucket>/<path:filename>', methods=['GET'])
def serve_file(bucket, filename):
    storage = get_storage()
    if bucket != storage.bucket:
        abort(404)
    return send_from_directory(storage.bucket_dir, filename, max_age=3600)
