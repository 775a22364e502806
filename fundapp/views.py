# fundapp/views.py
# ----------------------------------------------------------
# Thin JSON endpoints over the engines. Request bodies are JSON objects;
# engine errors map to 400 / 403 / 404 / 409.
# ----------------------------------------------------------

import json
import logging
from functools import wraps

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from fundapp import services
from fundapp.engine.commission import CommissionEngine
from fundapp.engine.leaderboard import Leaderboard
from fundapp.engine.targets import TargetStore
from fundapp.exceptions import FundraisingError, PermissionDenied, ValidationError
from fundapp.identity import RealUser, is_top_admin, resolve_principal
from fundapp.roles import REGION_FIELDS

logger = logging.getLogger(__name__)


def _json(data, status=200):
    return JsonResponse(data, status=status, encoder=DjangoJSONEncoder, safe=False)


def _body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def api_view(*methods):
    """Resolve the principal, run the view, turn engine errors into JSON."""
    def decorator(view):
        @csrf_exempt
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                principal = resolve_principal(request)
                return view(request, principal, *args, **kwargs)
            except FundraisingError as exc:
                return _json(exc.as_dict(), status=exc.status_code)
        return wrapper
    return decorator


def _require_admin(principal):
    if not is_top_admin(principal):
        raise PermissionDenied("Administrator access required")


# ======================================================
# TARGETS
# ======================================================
@api_view("POST")
def assign_target(request, principal):
    data = _body(request)
    target = TargetStore().assign(
        assigned_to=data.get("assignedToId"),
        assigned_by=principal,
        target_value=data.get("targetValue"),
        start_date=data.get("startDate"),
        end_date=data.get("endDate"),
        description=data.get("description", ""),
    )
    return _json(target.as_dict(), status=201)


@api_view("POST")
def divide_target(request, principal, target_id):
    data = _body(request)
    children = TargetStore().divide(target_id, data.get("divisions"), acting_user=principal)
    return _json({"parentTargetId": target_id, "targets": [c.as_dict() for c in children]}, status=201)


@api_view("POST")
def cancel_target(request, principal, target_id):
    data = _body(request)
    target = TargetStore().cancel(target_id, reason=data.get("reason", ""), acting_user=principal)
    return _json(target.as_dict())


@api_view("GET")
def target_progress(request, principal, user_id):
    return _json(TargetStore().target_progress(user_id))


@api_view("GET")
def target_summary(request, principal, user_id):
    return _json(TargetStore().target_summary(user_id))


# ======================================================
# COLLECTIONS
# ======================================================
@api_view("POST")
def record_collection(request, principal):
    data = _body(request)
    user_id = data.get("userId")
    if isinstance(principal, RealUser) and not is_top_admin(principal):
        if user_id and user_id != principal.id:
            raise PermissionDenied("You can only record your own collections")
        user_id = principal.id
    if not user_id:
        raise ValidationError("userId is required", field="userId")

    txn = services.record_collection(
        user_id,
        data.get("amount"),
        payment_mode=data.get("paymentMode") or "cash",
        donor_meta=data.get("donorMeta"),
    )
    return _json(txn.as_dict(), status=201)


@api_view("POST")
def verify_collection(request, principal, transaction_id):
    txn = services.verify_collection(transaction_id, principal)
    return _json(txn.as_dict())


@api_view("POST")
def reject_collection(request, principal, transaction_id):
    data = _body(request)
    txn = services.reject_collection(transaction_id, principal, data.get("reason"))
    return _json(txn.as_dict())


# ======================================================
# COMMISSIONS
# ======================================================
@api_view("POST")
def process_donation(request, principal):
    _require_admin(principal)
    data = _body(request)
    rows = CommissionEngine().process_donation(
        data.get("donationId"), data.get("attributedUserId"), data.get("amount")
    )
    return _json({"donationId": str(data.get("donationId")), "commissions": [r.as_dict() for r in rows]}, status=201)


@api_view("GET")
def donation_commissions(request, principal, donation_id):
    rows = CommissionEngine().commissions_for_donation(donation_id)
    return _json({"donationId": donation_id, "commissions": [r.as_dict() for r in rows]})


# ======================================================
# LEADERBOARD
# ======================================================
@api_view("GET")
def leaderboard(request, principal):
    scope = request.GET.get("scope", "national")
    region = {f: request.GET[f] for f in REGION_FIELDS if request.GET.get(f)}
    requester = request.GET.get("requesterId")
    if not requester and isinstance(principal, RealUser):
        requester = principal.id
    entries = Leaderboard().rank(
        scope, requester_id=requester, region=region, limit=request.GET.get("limit")
    )
    return _json({"scope": scope, "entries": entries})


@api_view("GET")
def team_performance(request, principal, user_id):
    return _json(Leaderboard().team_performance(user_id))
