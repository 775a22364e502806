# fundapp/identity.py
"""
Principal references resolved once at the boundary.

Authentication is handled elsewhere; this module turns whatever the auth
layer hands over (a Django user, a raw id, the built-in admin tag) into one
of two shapes the engines understand:

    RealUser(id, role)         a coordinator row exists for it
    SyntheticUser(tag, role)   a built-in principal with no coordinator row

Engine code checks the type, never the id string.
"""

from dataclasses import dataclass

from fundapp import conf
from fundapp.exceptions import NotFoundError, PermissionDenied


@dataclass(frozen=True)
class RealUser:
    id: str
    role: str = ""

    is_synthetic = False

    @property
    def label(self):
        return self.id


@dataclass(frozen=True)
class SyntheticUser:
    tag: str
    role: str = "ADMIN"

    is_synthetic = True

    @property
    def label(self):
        return self.tag


def is_top_admin(ref):
    if ref is None:
        return False
    if isinstance(ref, SyntheticUser):
        return ref.tag == conf.synthetic_admin_tag()
    return ref.role in conf.top_admin_roles()


def resolve_user_ref(raw, role=None, directory=None):
    """
    Accepts a UserRef, the synthetic admin tag, or a coordinator id.
    Unknown coordinator ids raise NotFoundError.
    """
    if raw is None or isinstance(raw, (RealUser, SyntheticUser)):
        return raw
    raw = str(raw)
    if raw == conf.synthetic_admin_tag():
        return SyntheticUser(tag=raw)
    if role is None and directory is not None:
        user = directory.get_user(raw)
        if user is None:
            raise NotFoundError(f"User {raw} not found", field="user")
        role = user.role
    return RealUser(id=raw, role=role or "")


def resolve_principal(request):
    """
    The acting principal for a request.

    Superusers without a coordinator profile act as the synthetic admin.
    """
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        raise PermissionDenied("Authentication required")

    coordinator = getattr(user, "coordinator", None)
    if coordinator is not None:
        return RealUser(id=coordinator.pk, role=coordinator.role)
    if user.is_superuser:
        return SyntheticUser(tag=conf.synthetic_admin_tag())
    raise PermissionDenied("No coordinator profile for this account")
