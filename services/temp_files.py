import os
import logging
from contextlib import contextmanager
from uuid import uuid4
from werkzeug.utils import secure_filename
from config import get_setting
from services.errors import FileTooLargeError, NoMaterialError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

class ArtifactHandle:
    def __init__(self, path, media_type, size_bytes, filename=None):
        self.path = path
        self.media_type = media_type
        self.size_bytes = size_bytes
        self.filename = filename
        self.released = False

    def __repr__(self):
        return f"ArtifactHandle(path={self.path!r}, media_type={self.media_type!r}, size_bytes={self.size_bytes})"

def _ensure_dir(upload_dir):
    if not os.path.exists(upload_dir):
        os.makedirs(upload_dir, exist_ok=True)

def store(upload, upload_dir=None, max_size=None):
    """Write an uploaded file (werkzeug ``FileStorage``) to the upload directory.

    The stream is copied in chunks so an oversized upload is rejected as soon
    as it crosses ``max_size``; the partial file is removed before raising.
    """
    upload_dir = upload_dir or get_setting('UPLOAD_DIR')
    max_size = max_size or get_setting('MAX_FILE_SIZE')
    _ensure_dir(upload_dir)

    original_name = secure_filename(upload.filename or '') or 'upload'
    path = os.path.join(upload_dir, f"{uuid4().hex}_{original_name}")
    size = 0
    try:
        with open(path, 'wb') as buffer:
            while True:
                chunk = upload.stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise FileTooLargeError(details=f"Máximo permitido: {max_size} bytes")
                buffer.write(chunk)
    except BaseException:
        _remove(path)
        raise

    if size == 0:
        _remove(path)
        raise NoMaterialError('El archivo proporcionado está vacío.')

    media_type = upload.mimetype or 'application/octet-stream'
    logger.info(f"Stored upload {original_name} ({size} bytes, {media_type}) at {path}")
    return ArtifactHandle(path, media_type, size, filename=original_name)

def read_all(handle):
    with open(handle.path, 'rb') as f:
        return f.read()

def release(handle):
    """Delete the artifact's file. Safe to call repeatedly, never raises."""
    if handle is None or handle.released:
        return
    handle.released = True
    _remove(handle.path)

def _remove(path):
    try:
        os.remove(path)
        logger.info(f"Removed temporary file {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove temporary file {path}: {str(e)}")

@contextmanager
def stored_artifacts(uploads, upload_dir=None, max_size=None):
    """Store every upload and release all of them however the block exits."""
    handles = []
    try:
        for upload in uploads:
            handles.append(store(upload, upload_dir=upload_dir, max_size=max_size))
        yield handles
    finally:
        for handle in handles:
            release(handle)
