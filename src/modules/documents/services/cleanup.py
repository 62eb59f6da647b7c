import logging
import os
import time

logger = logging.getLogger(__name__)


def delete_stale_temp_uploads(temp_dir: str, max_age_seconds: int, now: float | None = None) -> int:
    """
    Remove staging files left behind by a crashed worker.

    Requests clean up after themselves; this only catches files whose owner
    never reached its cleanup path.
    """
    if not os.path.isdir(temp_dir):
        return 0

    cutoff = (now if now is not None else time.time()) - max_age_seconds
    removed = 0
    for entry in os.scandir(temp_dir):
        if not entry.is_file():
            continue
        try:
            if entry.stat().st_mtime <= cutoff:
                os.remove(entry.path)
                removed += 1
        except FileNotFoundError:
            # Removed concurrently by its request
            continue
        except OSError as e:
            logger.error("Error deleting %s: %s", entry.path, e)

    if removed:
        logger.info("Removed %d stale staged upload(s) from %s", removed, temp_dir)
    return removed
