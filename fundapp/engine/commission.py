# fundapp/engine/commission.py
# ----------------------------------------------------------
# Tiered hierarchy commissions for an attributed donation
# ----------------------------------------------------------

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from django.db import IntegrityError

from commissions.models import CommissionLog, money
from fundapp import conf
from fundapp.engine.hierarchy import HierarchyDirectory
from fundapp.engine.repositories import CommissionRepository
from fundapp.exceptions import NotFoundError, ValidationError
from fundapp.utils import parse_amount

logger = logging.getLogger(__name__)


@dataclass
class CommissionShare:
    user_id: str
    position: int
    hierarchy_level: str
    percentage: Decimal
    amount: Decimal
    name: str = ""
    role: str = ""


@dataclass
class CommissionBreakdown:
    user_id: str
    donation_amount: Decimal
    shares: list = field(default_factory=list)
    conditions: list = field(default_factory=list)

    @property
    def total_commission(self):
        return sum((s.amount for s in self.shares), Decimal("0.00"))

    @property
    def organization_fund(self):
        return self.donation_amount - self.total_commission

    @property
    def truncated(self):
        return bool(self.conditions)


def commission_amount(amount, percentage):
    """amount * pct / 100 rounded half-up to whole currency units."""
    raw = Decimal(amount) * Decimal(percentage) / Decimal("100")
    return money(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CommissionEngine:
    """
    Walks outward from the credited user:

        self                0%
        immediate parent    5%   (15% if it is also the top)
        middle ancestors    2%
        top-most ancestor  15%

    The top tier is paid only to a user that really has no parent. When the
    walk was cut short by a loop or the depth limit, the last user reached
    is paid as a middle ancestor.
    """

    def __init__(self, directory=None, commissions=None):
        self.directory = directory if directory is not None else HierarchyDirectory()
        self.commissions = commissions if commissions is not None else CommissionRepository()

    def calculate_hierarchy_commissions(self, user_id, amount):
        amount = parse_amount(amount)
        rates = conf.commission_rates()

        breakdown = CommissionBreakdown(user_id=user_id, donation_amount=amount)
        chain = self.directory.get_ancestor_chain(user_id, conditions=breakdown.conditions)
        if breakdown.conditions:
            logger.warning(
                "Commission chain for %s truncated after %d ancestors; no top tier paid",
                user_id, len(chain),
            )

        breakdown.shares.append(
            self._share(user_id, 0, CommissionLog.LEVEL_SELF, rates["self"], amount)
        )
        reached_top = not breakdown.conditions
        for index, ancestor_id in enumerate(chain):
            is_last = index == len(chain) - 1
            if is_last and reached_top:
                level, pct = CommissionLog.LEVEL_TOP, rates["top"]
            elif index == 0:
                level, pct = CommissionLog.LEVEL_PARENT, rates["parent"]
            else:
                level, pct = CommissionLog.LEVEL_ANCESTOR, rates["ancestor"]
            breakdown.shares.append(self._share(ancestor_id, index + 1, level, pct, amount))

        self._attach_names(breakdown.shares)
        return breakdown

    def _share(self, user_id, position, level, pct, amount):
        return CommissionShare(
            user_id=user_id,
            position=position,
            hierarchy_level=level,
            percentage=money(pct),
            amount=commission_amount(amount, pct),
        )

    def _attach_names(self, shares):
        users = self.directory.users.get_many([s.user_id for s in shares])
        for share in shares:
            user = users.get(share.user_id)
            if user is not None:
                share.name = user.name
                share.role = user.role

    # -------------------------
    # LEDGER
    # -------------------------
    def process_donation(self, donation_id, attributed_user_id, amount):
        """
        Write one PENDING row per participant. Calling it again for the same
        donation returns the rows already written.
        """
        if not donation_id:
            raise ValidationError("donationId is required", field="donationId")
        donation_id = str(donation_id)

        existing = self.commissions.for_donation(donation_id)
        if existing:
            logger.info("Donation %s already processed (%d rows)", donation_id, len(existing))
            return existing

        if self.directory.get_user(attributed_user_id) is None:
            raise NotFoundError(f"User {attributed_user_id} not found", field="userId")

        breakdown = self.calculate_hierarchy_commissions(attributed_user_id, amount)
        rows = [
            CommissionLog(
                donation_id=donation_id,
                donation_amount=breakdown.donation_amount,
                user_id=share.user_id,
                user_name=share.name,
                user_role=share.role,
                position=share.position,
                hierarchy_level=share.hierarchy_level,
                commission_percentage=share.percentage,
                commission_amount=share.amount,
                status=CommissionLog.PENDING,
            )
            for share in breakdown.shares
        ]
        try:
            with self.commissions.atomic():
                self.commissions.create_many(rows)
        except IntegrityError:
            # a concurrent call for the same donation won
            logger.info("Donation %s processed concurrently; returning stored rows", donation_id)
            return self.commissions.for_donation(donation_id)

        logger.info(
            "Donation %s (%s by %s): %d commission rows, total %s",
            donation_id, breakdown.donation_amount, attributed_user_id,
            len(rows), breakdown.total_commission,
        )
        return self.commissions.for_donation(donation_id)

    def commissions_for_donation(self, donation_id):
        rows = self.commissions.for_donation(str(donation_id))
        if not rows:
            raise NotFoundError(f"No commissions for donation {donation_id}", field="donationId")
        return rows
