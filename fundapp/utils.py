# fundapp/utils.py

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date as django_parse_date

from commissions.models import money
from fundapp.exceptions import ValidationError


# ----------------------------------------------------
# Amount parsing
# ----------------------------------------------------
def parse_amount(value, field="amount", allow_zero=False):
    """
    Money from user input as a 2-place Decimal.
    Floats go through str() so 0.1 stays 0.10.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        amount = money(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field=field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0", field=field)
    return amount


# ----------------------------------------------------
# Date parsing
# ----------------------------------------------------
def parse_date(value, field="date"):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    try:
        parsed = django_parse_date(str(value)[:10])
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field=field)
    return parsed
