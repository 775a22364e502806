# fundapp/engine/leaderboard.py
# ----------------------------------------------------------
# Ranked collection tables (team / region / national)
# ----------------------------------------------------------

import logging
from decimal import Decimal

from fundapp import conf
from fundapp.engine import state
from fundapp.engine.hierarchy import HierarchyDirectory
from fundapp.engine.repositories import TargetRepository
from fundapp.exceptions import ValidationError
from fundapp.models import Target
from fundapp.roles import REGION_FIELDS

logger = logging.getLogger(__name__)

SCOPE_TEAM = "team"
SCOPE_REGION = "region"
SCOPE_NATIONAL = "national"
SCOPES = (SCOPE_TEAM, SCOPE_REGION, SCOPE_NATIONAL)

ZERO = Decimal("0.00")


def _pick_current(targets):
    """One target per user: the active one, else the newest completed."""
    found = {}
    for target in targets:
        held = found.get(target.assigned_to_id)
        if held is not None and held.is_active and not target.is_active:
            continue
        found[target.assigned_to_id] = target
    return found


class Leaderboard:
    def __init__(self, targets=None, directory=None, target_type=Target.DONATION_AMOUNT):
        self.targets = targets if targets is not None else TargetRepository()
        self.directory = directory if directory is not None else HierarchyDirectory()
        self.target_type = target_type

    def rank(self, scope, requester_id=None, region=None, limit=None):
        """
        Entries sorted by total collected (desc) then name (asc), ranked
        1..n with no gaps.
        """
        limit = self._parse_limit(limit)

        if scope == SCOPE_TEAM:
            if not requester_id:
                raise ValidationError("Team leaderboard needs a requester", field="requesterId")
            user_ids = self.directory.get_children(requester_id)
            current = self.targets.current_for_users(user_ids, self.target_type)
        elif scope == SCOPE_REGION:
            filters = self._parse_region(region)
            rows = self.targets.with_status(state.ACTIVE_STATUSES, region=filters)
            current = _pick_current(t for t in rows if t.target_type == self.target_type)
            user_ids = list(current)
        elif scope == SCOPE_NATIONAL:
            rows = self.targets.with_status(state.ACTIVE_STATUSES + (state.COMPLETED,))
            current = _pick_current(t for t in rows if t.target_type == self.target_type)
            user_ids = list(current)
        else:
            raise ValidationError(
                f"Unknown scope {scope!r}; expected one of {', '.join(SCOPES)}",
                field="scope",
            )

        users = self.directory.users.get_many(user_ids)
        entries = []
        for user_id in user_ids:
            user = users.get(user_id)
            target = current.get(user_id)
            collected = target.total_collection if target else ZERO
            value = target.target_value if target else ZERO
            entries.append({
                "userId": user_id,
                "name": user.name if user else "",
                "role": user.role if user else "",
                "totalCollected": collected,
                "targetAmount": value,
                "achievementPercentage": state.progress_percentage(collected, value),
            })

        entries.sort(key=lambda e: (-e["totalCollected"], e["name"], e["userId"]))
        entries = entries[:limit]
        for position, entry in enumerate(entries, start=1):
            entry["rank"] = position
        return entries

    def team_performance(self, user_id):
        """Per-member breakdown of a user's direct reports."""
        member_ids = self.directory.get_children(user_id)
        users = self.directory.users.get_many(member_ids)
        current = self.targets.current_for_users(member_ids, self.target_type)

        members = []
        for member_id in member_ids:
            user = users.get(member_id)
            target = current.get(member_id)
            members.append({
                "userId": member_id,
                "name": user.name if user else "",
                "role": user.role if user else "",
                "isActive": bool(user and user.is_active),
                "hasTarget": target is not None,
                "targetAmount": target.target_value if target else ZERO,
                "collected": target.total_collection if target else ZERO,
                "percentage": target.progress_percentage if target else ZERO,
                "status": target.display_status if target else "NO_TARGET",
            })
        members.sort(key=lambda m: (-m["collected"], m["name"]))

        total = sum((m["collected"] for m in members), ZERO)
        average = (total / len(members)).quantize(Decimal("0.01")) if members else ZERO
        return {
            "userId": user_id,
            "teamSize": len(members),
            "activeMembers": sum(1 for m in members if m["isActive"]),
            "membersWithTarget": sum(1 for m in members if m["hasTarget"]),
            "totalTeamCollection": total,
            "averageCollection": average,
            "members": members,
        }

    @staticmethod
    def _parse_limit(limit):
        if limit is None or limit == "":
            return conf.leaderboard_default_limit()
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationError("limit must be a whole number", field="limit")
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        return limit

    @staticmethod
    def _parse_region(region):
        region = {k: v for k, v in (region or {}).items() if v not in (None, "")}
        if not region:
            raise ValidationError("Region leaderboard needs at least one region filter", field="region")
        unknown = sorted(set(region) - set(REGION_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unknown region filter(s): {', '.join(unknown)}", field="region"
            )
        return region
