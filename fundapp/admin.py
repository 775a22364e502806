# ==========================================================
# fundapp/admin.py
# ==========================================================
from django.contrib import admin, messages

from fundapp.engine.targets import TargetStore
from fundapp.exceptions import FundraisingError
from fundapp.models import CollectionTransaction, Coordinator, ReconcileLock, Target


# ==========================================================
# COORDINATOR ADMIN
# ==========================================================
@admin.register(Coordinator)
class CoordinatorAdmin(admin.ModelAdmin):
    list_display = (
        "coordinator_id",
        "name",
        "role",
        "parent",
        "state",
        "district",
        "is_active",
        "joined_date",
    )
    search_fields = ("coordinator_id", "name", "phone", "email")
    list_filter = ("role", "is_active", "state")
    raw_id_fields = ("parent", "user")
    ordering = ("coordinator_id",)


# ==========================================================
# TARGET ADMIN
# ==========================================================
@admin.register(Target)
class TargetAdmin(admin.ModelAdmin):
    list_display = [
        "id", "assigned_to", "target_value", "personal_collection",
        "team_collection", "status", "is_divided", "start_date", "end_date",
    ]
    list_filter = ["status", "level", "is_divided"]
    search_fields = ["assigned_to__coordinator_id", "assigned_to__name", "description"]
    raw_id_fields = ["assigned_to", "assigned_by", "parent_target"]
    # engine-owned numbers; edit through the API only
    readonly_fields = ["personal_collection", "team_collection", "version", "is_divided"]
    actions = ["action_cancel"]

    @admin.action(description="Cancel selected targets")
    def action_cancel(self, request, queryset):
        store = TargetStore()
        for target in queryset:
            try:
                store.cancel(target.pk, reason=f"Cancelled from admin by {request.user}")
            except FundraisingError as exc:
                self.message_user(request, f"Target {target.pk}: {exc.message}", level=messages.WARNING)


# ==========================================================
# COLLECTION ADMIN
# ==========================================================
@admin.register(CollectionTransaction)
class CollectionTransactionAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "amount", "payment_mode", "status", "target", "created_at"]
    list_filter = ["status", "payment_mode"]
    search_fields = ["user__coordinator_id", "donor_name", "reference_number"]
    raw_id_fields = ["user", "target", "verified_by"]


@admin.register(ReconcileLock)
class ReconcileLockAdmin(admin.ModelAdmin):
    list_display = ["run_date", "is_running", "started_at", "finished_at", "targets_checked"]
