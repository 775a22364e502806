import logging

from celery import shared_task
from django.utils import timezone

from fundapp.engine.commission import CommissionEngine
from fundapp.engine.lock import run_with_lock
from fundapp.engine.propagation import PropagationEngine
from fundapp.utils import parse_date

logger = logging.getLogger(__name__)


@shared_task
def propagate_collection_task(user_id):
    """Recompute team collections above `user_id`. Returns the levels updated."""
    report = PropagationEngine().propagate(user_id)
    if not report.ok:
        logger.warning(
            "Propagation from %s stopped at %s (%s)",
            user_id, report.stopped_at, report.stop_reason,
        )
    return [ancestor_id for ancestor_id, _, _ in report.updated]


@shared_task
def process_donation_commissions_task(donation_id, user_id, amount):
    rows = CommissionEngine().process_donation(donation_id, user_id, amount)
    return [row.pk for row in rows]


@shared_task
def reconcile_team_collections_task(run_date=None):
    """Nightly repair of every team collection, deepest level first."""
    run_date = parse_date(run_date, field="runDate") if run_date else timezone.localdate()
    checked = run_with_lock(run_date, lambda _: PropagationEngine().reconcile_all())
    if checked is None:
        logger.info("Reconcile for %s skipped", run_date)
    else:
        logger.info("Reconcile for %s checked %s targets", run_date, checked)
    return checked
