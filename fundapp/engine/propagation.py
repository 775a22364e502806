# fundapp/engine/propagation.py
# ----------------------------------------------------------
# Upward propagation of verified collections
# ----------------------------------------------------------

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from fundapp.engine import state
from fundapp.engine.hierarchy import HierarchyDirectory
from fundapp.engine.repositories import TargetRepository
from fundapp.exceptions import ConcurrencyConflict, PropagationFailure
from fundapp.models import Target

logger = logging.getLogger(__name__)

CAS_ATTEMPTS = 2

STOP_TOP = "top"
STOP_NO_TARGET = "no_active_target"
STOP_TRUNCATED = "truncated"
STOP_CONFLICT = "conflict"
STOP_FAILURE = "failure"


@dataclass
class PropagationReport:
    user_id: str
    # (ancestor id, target id, new team collection) in walk order
    updated: list = field(default_factory=list)
    stopped_at: str = None
    stop_reason: str = STOP_TOP
    failures: list = field(default_factory=list)
    conditions: list = field(default_factory=list)

    @property
    def ok(self):
        return not self.failures


class PropagationEngine:
    """
    Keeps every ancestor's team collection equal to the sum of its direct
    reports' current target totals.

    Each level is recomputed from source rather than incremented, so
    running it twice, out of order, or after a failed run leaves the same
    numbers. Only active targets are written; an ancestor whose target is
    completed or cancelled ends the walk. A child's completed target keeps
    counting toward its parent until a newer target is assigned.
    """

    def __init__(self, targets=None, directory=None, target_type=Target.DONATION_AMOUNT):
        self.targets = targets if targets is not None else TargetRepository()
        self.directory = directory if directory is not None else HierarchyDirectory()
        self.target_type = target_type

    def propagate(self, user_id):
        """
        Walk outward from `user_id`'s parent. Never raises: failures are
        logged and reported, and the next run over the branch repairs them.
        """
        report = PropagationReport(user_id=user_id)
        try:
            chain = self.directory.get_ancestor_chain(user_id, conditions=report.conditions)
        except Exception as exc:
            logger.exception("Propagation from %s could not read the hierarchy", user_id)
            report.failures.append(PropagationFailure(user_id, exc))
            report.stop_reason = STOP_FAILURE
            return report

        for ancestor_id in chain:
            try:
                target = self.recompute_team_collection(ancestor_id)
            except ConcurrencyConflict as exc:
                logger.warning(
                    "Team collection for %s still conflicting after retry; "
                    "left for the next event: %s", ancestor_id, exc,
                )
                report.failures.append(PropagationFailure(ancestor_id, exc))
                report.stopped_at = ancestor_id
                report.stop_reason = STOP_CONFLICT
                return report
            except Exception as exc:
                logger.exception("Propagation failed at %s (from %s)", ancestor_id, user_id)
                report.failures.append(PropagationFailure(ancestor_id, exc))
                report.stopped_at = ancestor_id
                report.stop_reason = STOP_FAILURE
                return report

            if target is None:
                report.stopped_at = ancestor_id
                report.stop_reason = STOP_NO_TARGET
                return report
            report.updated.append((ancestor_id, target.pk, target.team_collection))

        if report.conditions:
            report.stop_reason = STOP_TRUNCATED
        return report

    def recompute_team_collection(self, user_id):
        """
        Recompute one level and persist it. Returns the updated target, or
        None when the user has no active target. A lost compare-and-swap is
        retried once from a fresh read; a second loss is raised.
        """
        last_conflict = None
        for attempt in range(CAS_ATTEMPTS):
            target = self.targets.active_for(user_id, self.target_type)
            if target is None:
                return None

            team = self.team_total(user_id)
            new_status = state.next_status(target.status, target.personal_collection + team, target.target_value)
            if team == target.team_collection and new_status == target.status:
                return target

            target.team_collection = team
            target.status = new_status
            try:
                self.targets.compare_and_swap(target, ["team_collection", "status"])
                return target
            except ConcurrencyConflict as exc:
                last_conflict = exc
                logger.info("Retrying team recompute for %s: %s", user_id, exc)
        raise last_conflict

    def team_total(self, user_id):
        child_ids = self.directory.get_children(user_id)
        if not child_ids:
            return Decimal("0.00")
        current = self.targets.current_for_users(child_ids, self.target_type)
        return sum((t.total_collection for t in current.values()), Decimal("0.00"))

    def reconcile_all(self):
        """
        Recompute every owner of an active target, deepest first, so each
        level reads already-repaired children. Returns the number of levels
        checked.
        """
        owners = {
            t.assigned_to_id
            for t in self.targets.with_status(state.ACTIVE_STATUSES)
        }
        depth = {uid: len(self.directory.get_ancestor_chain(uid)) for uid in owners}
        checked = 0
        for uid in sorted(owners, key=lambda u: (-depth[u], u)):
            try:
                self.recompute_team_collection(uid)
            except Exception:
                logger.exception("Reconcile failed for %s", uid)
                continue
            checked += 1
        return checked
