# fundapp/conf.py
from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "MAX_HIERARCHY_DEPTH": 20,
    "MAX_TARGET_VALUE": 100_000_000,
    "COMMISSION_RATES": {"self": 0, "parent": 5, "ancestor": 2, "top": 15},
    "TOP_ADMIN_ROLES": ["ADMIN"],
    "SYNTHETIC_ADMIN_TAG": "demo-admin",
    "LEADERBOARD_DEFAULT_LIMIT": 10,
    "PROPAGATE_ASYNC": False,
}


def get_setting(name):
    overrides = getattr(settings, "FUNDRAISING", {}) or {}
    return overrides.get(name, DEFAULTS[name])


def max_depth():
    return int(get_setting("MAX_HIERARCHY_DEPTH"))


def max_target_value():
    return Decimal(str(get_setting("MAX_TARGET_VALUE")))


def commission_rates():
    rates = dict(DEFAULTS["COMMISSION_RATES"])
    rates.update(get_setting("COMMISSION_RATES"))
    return {tier: Decimal(str(pct)) for tier, pct in rates.items()}


def top_admin_roles():
    return tuple(get_setting("TOP_ADMIN_ROLES"))


def synthetic_admin_tag():
    return get_setting("SYNTHETIC_ADMIN_TAG")


def leaderboard_default_limit():
    return int(get_setting("LEADERBOARD_DEFAULT_LIMIT"))


def propagate_async():
    return bool(get_setting("PROPAGATE_ASYNC"))
