# fundapp/engine/targets.py
# ----------------------------------------------------------
# Target assignment, division and personal collection
# ----------------------------------------------------------

import logging
from decimal import Decimal

from django.db import IntegrityError

from fundapp import conf
from fundapp.engine import state
from fundapp.engine.hierarchy import HierarchyDirectory
from fundapp.engine.repositories import TargetRepository
from fundapp.exceptions import (
    ConcurrencyConflict,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from fundapp.identity import RealUser, SyntheticUser, is_top_admin, resolve_user_ref
from fundapp.models import Target
from fundapp.roles import REGION_FIELDS, level_for_role
from fundapp.utils import parse_amount, parse_date

logger = logging.getLogger(__name__)

# One retry after a lost compare-and-swap, then give up
CAS_ATTEMPTS = 2


class TargetStore:
    """
    Owns Target rows: assignment, division, personal collection and the
    status transitions that follow from them.

    Usage:
        store = TargetStore()
        target = store.assign("STATE01", admin_ref, 200000, start, end)
        children = store.divide(target.pk, [{"assignedToId": "ZONE01", "amount": 50000}])
    """

    def __init__(self, targets=None, directory=None):
        self.targets = targets if targets is not None else TargetRepository()
        self.directory = directory if directory is not None else HierarchyDirectory()

    # -------------------------
    # LOOKUPS
    # -------------------------
    def get(self, target_id):
        target = self.targets.get(target_id)
        if target is None:
            raise NotFoundError(f"Target {target_id} not found", field="target")
        return target

    def get_active_target(self, user_id, target_type=Target.DONATION_AMOUNT):
        return self.targets.active_for(user_id, target_type)

    def subdivisions(self, target_id):
        """Child target ids in creation order."""
        return [t.pk for t in self.targets.subdivisions_of(target_id)]

    # -------------------------
    # ASSIGN
    # -------------------------
    def assign(
        self,
        assigned_to,
        assigned_by,
        target_value,
        start_date,
        end_date,
        description="",
        target_type=Target.DONATION_AMOUNT,
        notes="",
    ):
        value = parse_amount(target_value, field="targetValue")
        if value > conf.max_target_value():
            raise ValidationError("Target amount is too large", field="targetValue")
        start = parse_date(start_date, field="startDate")
        end = parse_date(end_date, field="endDate")
        if end <= start:
            raise ValidationError("End date must be after start date", field="endDate")

        assignee = self.directory.get_user(assigned_to)
        if assignee is None:
            raise NotFoundError(f"User {assigned_to} not found", field="assignedToId")

        assigner = resolve_user_ref(assigned_by, directory=self.directory)
        self._check_can_assign(assigner, assignee.pk)

        if self.targets.active_for(assignee.pk, target_type) is not None:
            raise ConflictError(
                f"User {assignee.pk} already has an active target",
                field="assignedToId",
            )

        target = Target(
            assigned_to_id=assignee.pk,
            target_type=target_type,
            target_value=value,
            status=state.PENDING,
            start_date=start,
            end_date=end,
            description=(description or "")[:500],
            notes=notes or "",
            level=level_for_role(assignee.role),
            state=assignee.state,
            zone=assignee.zone,
            district=assignee.district,
            block=assignee.block,
        )
        self._set_assigner(target, assigner)

        try:
            with self.targets.atomic():
                self.targets.create(target)
        except IntegrityError:
            # lost a race with another assignment for the same user
            raise ConflictError(
                f"User {assignee.pk} already has an active target",
                field="assignedToId",
            )

        logger.info(
            "Target %s assigned to %s by %s: %s",
            target.pk, assignee.pk, assigner.label if assigner else None, value,
        )
        return target

    def _check_can_assign(self, assigner, assignee_id):
        if assigner is None:
            raise PermissionDenied("Assigner is required")
        if is_top_admin(assigner):
            return
        if isinstance(assigner, SyntheticUser):
            raise PermissionDenied("Unknown system principal")
        if not self.directory.is_ancestor(assigner.id, assignee_id):
            raise PermissionDenied("You can only assign targets to your own hierarchy")

    @staticmethod
    def _set_assigner(target, assigner):
        if isinstance(assigner, RealUser):
            target.assigned_by_id = assigner.id
        elif isinstance(assigner, SyntheticUser):
            target.assigned_by_tag = assigner.tag

    # -------------------------
    # DIVIDE
    # -------------------------
    def divide(self, parent_target_id, divisions, acting_user=None):
        """
        Split a target among the owner's direct reports. All-or-nothing:
        every division is validated before the first row is written.

        Each division: {"assignedToId", "amount", "description"?,
        "startDate"?, "endDate"?, "region"?}. A child takes the region
        given in its division, field by field, and otherwise its assignee's.
        """
        parent = self.get(parent_target_id)

        actor = resolve_user_ref(acting_user, directory=self.directory) if acting_user else None
        if isinstance(actor, RealUser) and actor.id != parent.assigned_to_id and not is_top_admin(actor):
            raise PermissionDenied("You can only divide your own targets")
        if isinstance(actor, SyntheticUser) and not is_top_admin(actor):
            raise PermissionDenied("Unknown system principal")

        if parent.is_divided:
            raise ConflictError("This target has already been divided")
        if parent.status == state.CANCELLED:
            raise ConflictError("A cancelled target cannot be divided")
        if not divisions:
            raise ValidationError("At least one division is required", field="divisions")

        planned = [self._parse_division(i, d, parent) for i, d in enumerate(divisions)]

        total = sum((p["amount"] for p in planned), Decimal("0"))
        if total > parent.target_value:
            raise ValidationError(
                "Total division amount exceeds parent target",
                field="divisions",
                details={
                    "parentTarget": str(parent.target_value),
                    "totalDivisions": str(total),
                },
            )

        team = set(self.directory.get_children(parent.assigned_to_id))
        seen = set()
        for i, p in enumerate(planned):
            user_id = p["user_id"]
            if user_id in seen:
                raise ValidationError(
                    f"User {user_id} appears in more than one division",
                    field="assignedToId", index=i,
                )
            seen.add(user_id)
            if user_id not in team:
                raise PermissionDenied(
                    f"User {user_id} is not in your team",
                    field="assignedToId", index=i,
                )

        existing = self.targets.active_for_users(list(seen), parent.target_type)
        for i, p in enumerate(planned):
            if p["user_id"] in existing:
                raise ConflictError(
                    f"User {p['user_id']} already has an active target",
                    field="assignedToId", index=i,
                    details={"existingTargetId": existing[p["user_id"]].pk},
                )

        assignees = self.directory.users.get_many(list(seen))
        children = []
        try:
            with self.targets.atomic():
                for p in planned:
                    assignee = assignees.get(p["user_id"])
                    child = Target(
                        assigned_to_id=p["user_id"],
                        assigned_by_id=parent.assigned_to_id,
                        target_type=parent.target_type,
                        target_value=p["amount"],
                        status=state.PENDING,
                        start_date=p["start_date"],
                        end_date=p["end_date"],
                        description=p["description"],
                        parent_target_id=parent.pk,
                        level=level_for_role(assignee.role) if assignee else parent.level,
                        **self._division_region(p["region"], assignee, parent),
                    )
                    children.append(self.targets.create(child))

                parent.is_divided = True
                self.targets.compare_and_swap(parent, ["is_divided"])
        except ConcurrencyConflict:
            raise ConflictError("Target changed while dividing; retry the request")
        except IntegrityError:
            raise ConflictError("An assignee received an active target meanwhile; retry the request")

        logger.info(
            "Target %s divided into %s (total %s of %s)",
            parent.pk, [c.pk for c in children], total, parent.target_value,
        )
        return children

    @staticmethod
    def _parse_division(index, division, parent):
        if not isinstance(division, dict):
            raise ValidationError("Each division must be an object", field="divisions", index=index)
        user_id = division.get("assignedToId") or division.get("assigned_to")
        if not user_id:
            raise ValidationError("assignedToId is required", field="assignedToId", index=index)
        try:
            amount = parse_amount(division.get("amount"), field="amount")
        except ValidationError as exc:
            exc.index = index
            raise

        start = division.get("startDate") or division.get("start_date")
        end = division.get("endDate") or division.get("end_date")
        start = parse_date(start, field="startDate") if start else parent.start_date
        end = parse_date(end, field="endDate") if end else parent.end_date
        if end <= start:
            raise ValidationError("End date must be after start date", field="endDate", index=index)

        region = division.get("region") or {}
        if not isinstance(region, dict):
            raise ValidationError("region must be an object", field="region", index=index)
        unknown = set(region) - set(REGION_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown region field(s): {', '.join(sorted(unknown))}",
                field="region", index=index,
            )

        description = division.get("description") or f"Sub-target of target {parent.pk}"
        return {
            "user_id": str(user_id),
            "amount": amount,
            "start_date": start,
            "end_date": end,
            "description": description[:500],
            "region": {k: str(v) for k, v in region.items() if v},
        }

    @staticmethod
    def _division_region(override, assignee, parent):
        source = assignee if assignee is not None else parent
        return {f: override.get(f) or getattr(source, f) or "" for f in REGION_FIELDS}

    # -------------------------
    # COLLECTION / STATUS
    # -------------------------
    def record_personal_collection(self, target_id, amount):
        """
        Add a verified collection to the owner's personal total and move the
        status along. Re-reads and retries once if another writer got there
        first.
        """
        amount = parse_amount(amount)
        for attempt in range(CAS_ATTEMPTS):
            target = self.get(target_id)
            if target.status == state.CANCELLED:
                raise ConflictError(f"Target {target_id} is cancelled")

            target.personal_collection = target.personal_collection + amount
            target.status = state.next_status(
                target.status, target.total_collection, target.target_value
            )
            try:
                self.targets.compare_and_swap(target, ["personal_collection", "status"])
                return target
            except ConcurrencyConflict as exc:
                logger.info("Retrying personal collection on target %s: %s", target_id, exc)
        raise ConflictError(f"Target {target_id} is busy; retry the collection")

    def cancel(self, target_id, reason="", acting_user=None):
        target = self.get(target_id)
        actor = resolve_user_ref(acting_user, directory=self.directory) if acting_user else None
        if isinstance(actor, RealUser) and not is_top_admin(actor):
            owner_or_above = actor.id == target.assigned_to_id or self.directory.is_ancestor(
                actor.id, target.assigned_to_id
            )
            if not owner_or_above:
                raise PermissionDenied("You cannot cancel this target")

        if not state.can_cancel(target.status):
            raise ConflictError(f"Target {target_id} is already {target.status}")

        target.status = state.CANCELLED
        fields = ["status"]
        if reason:
            target.notes = f"{target.notes}\nCancelled: {reason}".strip()
            fields.append("notes")
        try:
            self.targets.compare_and_swap(target, fields)
        except ConcurrencyConflict:
            raise ConflictError(f"Target {target_id} changed meanwhile; retry")
        logger.info("Target %s cancelled", target_id)
        return target

    # -------------------------
    # SUMMARIES
    # -------------------------
    def target_progress(self, user_id):
        target = self.get_active_target(user_id)
        if target is None:
            return {
                "hasActiveTarget": False,
                "targetAmount": Decimal("0"),
                "collected": Decimal("0"),
                "remaining": Decimal("0"),
                "percentage": Decimal("0"),
                "status": "NO_TARGET",
            }
        return {
            "hasActiveTarget": True,
            "targetId": target.pk,
            "targetAmount": target.target_value,
            "personal": target.personal_collection,
            "team": target.team_collection,
            "collected": target.total_collection,
            "remaining": target.remaining_amount,
            "percentage": target.progress_percentage,
            "status": target.display_status,
            "daysRemaining": target.days_remaining,
            "isOverdue": target.is_overdue,
        }

    def target_summary(self, user_id):
        targets = self.targets.for_user(user_id)
        active = self.get_active_target(user_id)
        if targets:
            average = sum((t.progress_percentage for t in targets), Decimal("0")) / len(targets)
        else:
            average = Decimal("0")
        return {
            "userId": user_id,
            "totalTargets": len(targets),
            "activeTargetId": active.pk if active else None,
            "completedTargets": sum(1 for t in targets if t.status == state.COMPLETED),
            "inProgressTargets": sum(1 for t in targets if t.status == state.IN_PROGRESS),
            "overdueTargets": sum(1 for t in targets if t.is_overdue),
            "averageProgress": average.quantize(Decimal("0.01")),
        }
