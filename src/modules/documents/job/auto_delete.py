import logging

from apscheduler.schedulers.background import BackgroundScheduler

from config import settings
from modules.documents.services.cleanup import delete_stale_temp_uploads
from modules.security.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def start_cleanup_job(rate_limiter: RateLimiter | None = None) -> BackgroundScheduler:
    """Periodic sweep of orphaned staging files and expired rate-limit windows."""
    scheduler = BackgroundScheduler()

    def job():
        delete_stale_temp_uploads(settings.TEMP_UPLOAD_DIR, settings.TEMP_UPLOAD_MAX_AGE_SECONDS)
        if rate_limiter is not None:
            pruned = rate_limiter.prune()
            if pruned:
                logger.debug("Pruned %d expired rate-limit window(s)", pruned)

    scheduler.add_job(job, 'interval', minutes=settings.CLEANUP_INTERVAL_MINUTES)
    scheduler.start()
    return scheduler
