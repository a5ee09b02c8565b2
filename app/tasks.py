import logging

from app.core.celery_config import celery_app
from app.services.views import ViewCountClient

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def record_event_view_task(self, event_id: int) -> int:
    """Count one view of a published event."""
    views = ViewCountClient().record_view(event_id)
    logger.debug("Event %s now has %s views.", event_id, views)
    return views
