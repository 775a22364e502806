# fundapp/engine/lock.py

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from fundapp.models import ReconcileLock

logger = logging.getLogger(__name__)


def run_with_lock(run_date, job, allow_rerun_today=True, cooldown_minutes=5, stale_minutes=10):
    """
    Run `job(run_date)` at most once at a time per run date.

    - A running lock older than `stale_minutes` is treated as crashed and released
    - Past dates that already finished are never rerun
    - Today may rerun after `cooldown_minutes`

    Returns the job's result, or None when skipped. `job` should return the
    number of targets it checked.
    """
    now = timezone.now()
    today = timezone.localdate()

    with transaction.atomic():
        lock, _ = ReconcileLock.objects.select_for_update().get_or_create(run_date=run_date)

        if lock.is_running:
            if lock.started_at and now - lock.started_at > timedelta(minutes=stale_minutes):
                logger.warning("Releasing stale reconcile lock for %s", run_date)
            else:
                logger.info("Reconcile for %s already running; skipped", run_date)
                return None

        if lock.finished_at:
            if run_date != today:
                logger.info("Reconcile for %s already finished; skipped", run_date)
                return None
            if not allow_rerun_today:
                logger.info("Rerun disabled for %s; skipped", run_date)
                return None
            if now - lock.finished_at < timedelta(minutes=cooldown_minutes):
                logger.info("Reconcile cooldown (%sm) active; skipped", cooldown_minutes)
                return None

        lock.is_running = True
        lock.started_at = now
        lock.save(update_fields=["is_running", "started_at"])

    try:
        result = job(run_date)
        with transaction.atomic():
            ReconcileLock.objects.filter(run_date=run_date).update(
                is_running=False,
                started_at=None,
                finished_at=timezone.now(),
                targets_checked=int(result or 0),
            )
        return result
    finally:
        # release on crash without marking finished
        ReconcileLock.objects.filter(run_date=run_date, is_running=True).update(
            is_running=False, started_at=None
        )
