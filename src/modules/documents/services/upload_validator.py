"""
Gatekeeping for incoming PDF uploads.

The upload is staged to a temporary file and checked in order: declared
type, size, magic bytes, then a scan of a bounded prefix for active content.
The staging file is removed on every exit path.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator, List

from modules.documents.errors import SecurityRejection, ValidationError

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF-"
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
SCAN_PREFIX_BYTES = 50 * 1024

SCRIPT_MARKERS = ("/JS", "/JavaScript")
AUTO_ACTION_MARKERS = ("/AA", "/OpenAction")

MSG_UNSUPPORTED_TYPE = "Type de fichier non autorisé. Seuls les PDF sont acceptés."
MSG_NOT_A_PDF = "Le fichier n'est pas un PDF valide."
MSG_SCRIPT = "Le PDF contient potentiellement du code JavaScript non autorisé."
MSG_AUTO_ACTION = "Le PDF contient des actions automatiques potentiellement dangereuses."
MSG_EXTERNAL_LINKS = "Le PDF contient des liens externes (à surveiller)."


def size_limit_message(max_file_size: int) -> str:
    return f"Le fichier est trop volumineux. La taille maximale est de {max_file_size // (1024 * 1024)} MB."


@contextmanager
def staged_upload(file_contents: bytes, temp_dir: str, filename: str = "") -> Iterator[str]:
    """Write the upload to a temp file and yield its path; always deletes it."""
    os.makedirs(temp_dir, exist_ok=True)
    suffix = os.path.splitext(filename)[1][:10] if filename else ""
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=suffix, dir=temp_dir)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(file_contents)
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        else:
            logger.debug("Removed staged upload %s", path)


def _check_content_type(content_type: str) -> None:
    if content_type != PDF_MIME_TYPE:
        raise ValidationError(MSG_UNSUPPORTED_TYPE)


def _check_size(size: int, max_file_size: int) -> None:
    if size > max_file_size:
        raise ValidationError(size_limit_message(max_file_size))


def _check_magic(path: str) -> None:
    with open(path, "rb") as f:
        header = f.read(len(PDF_MAGIC))
    if header != PDF_MAGIC:
        raise ValidationError(MSG_NOT_A_PDF)


def _scan_active_content(path: str, prefix_bytes: int) -> List[str]:
    """Heuristic scan of the first `prefix_bytes`; never reads the whole file."""
    with open(path, "rb") as f:
        content = f.read(prefix_bytes).decode("latin-1")

    if any(marker in content for marker in SCRIPT_MARKERS):
        raise SecurityRejection(MSG_SCRIPT)
    if any(marker in content for marker in AUTO_ACTION_MARKERS):
        raise SecurityRejection(MSG_AUTO_ACTION)

    warnings = []
    if "/URI" in content and ("http://" in content or "https://" in content):
        logger.warning(MSG_EXTERNAL_LINKS)
        warnings.append(MSG_EXTERNAL_LINKS)
    return warnings


def validate_upload(
    file_contents: bytes,
    content_type: str,
    filename: str,
    temp_dir: str,
    max_file_size: int = MAX_FILE_SIZE,
    scan_prefix_bytes: int = SCAN_PREFIX_BYTES,
) -> List[str]:
    """
    Validate an upload; returns non-fatal warnings.

    Raises ValidationError or SecurityRejection on the first failing check.
    """
    with staged_upload(file_contents, temp_dir, filename) as path:
        _check_content_type(content_type)
        _check_size(len(file_contents), max_file_size)
        _check_magic(path)
        return _scan_active_content(path, scan_prefix_bytes)
