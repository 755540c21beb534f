from celery import Celery
from celery import signals
import logging
import time
from prometheus_client import Counter, Histogram
from journey_analyzer.config import get_settings

settings = get_settings()

celery_app = Celery(
    "journey_analyzer",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "journey_analyzer.tasks.rebuild",
    ],
)

celery_app.conf.update(task_serializer="json", result_serializer="json", accept_content=["json"], timezone="UTC", enable_utc=True)

TASK_SUCCESS = Counter('celery_task_success_total', 'Celery task successes', ['task'])
TASK_FAILURE = Counter('celery_task_failure_total', 'Celery task failures', ['task'])
TASK_DURATION = Histogram('celery_task_duration_seconds', 'Celery task runtime', ['task'], buckets=(0.05,0.1,0.25,0.5,1,2,5,10,30,60))

_task_start_times = {}


@signals.after_setup_logger.connect
def _apply_log_level(logger=None, **kwargs):  # noqa
    logging.getLogger("journey_analyzer").setLevel(get_settings().log_level.upper())


@signals.task_prerun.connect
def _task_prerun(sender=None, task_id=None, **kwargs):  # noqa
    _task_start_times[task_id] = time.time()


@signals.task_postrun.connect
def _task_postrun(sender=None, task_id=None, state=None, **kwargs):  # noqa
    name = sender.name if sender else 'unknown'
    start = _task_start_times.pop(task_id, None)
    if start is not None:
        TASK_DURATION.labels(task=name).observe(time.time() - start)
    if state == 'SUCCESS':
        TASK_SUCCESS.labels(task=name).inc()
    elif state is not None:
        TASK_FAILURE.labels(task=name).inc()


# Periodic tasks (beat). Requires worker with -B or separate beat service.
# Full consolidation and full rebuilds are on demand only.
_interval = float(settings.incremental_rebuild_interval_seconds)
celery_app.conf.beat_schedule = {
    "rebuild-recent-journeys": {
        "task": "journey_analyzer.tasks.rebuild.rebuild_recent_journeys",
        "schedule": _interval,
        "options": {"expires": max(1.0, _interval - 1)},
    },
}
