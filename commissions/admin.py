from django.contrib import admin, messages

from commissions.models import CommissionLog
from commissions.services import mark_paid
from fundapp.exceptions import FundraisingError


@admin.register(CommissionLog)
class CommissionLogAdmin(admin.ModelAdmin):
    list_display = (
        "donation_id", "position", "user", "user_role", "hierarchy_level",
        "commission_percentage", "commission_amount", "status", "paid_at",
    )
    list_filter = ("status", "hierarchy_level", "user_role")
    search_fields = ("donation_id", "user__coordinator_id", "user_name", "payment_reference")
    readonly_fields = (
        "donation_id", "donation_amount", "user", "user_name", "user_role", "position",
        "hierarchy_level", "commission_percentage", "commission_amount", "created_at",
    )
    actions = ["action_mark_paid"]

    @admin.action(description="Mark selected commissions as paid")
    def action_mark_paid(self, request, queryset):
        done = 0
        for log in queryset:
            try:
                mark_paid(log.pk, payment_method="other", notes=f"Marked paid by {request.user}")
                done += 1
            except FundraisingError as exc:
                self.message_user(request, f"{log.pk}: {exc.message}", level=messages.WARNING)
        self.message_user(request, f"{done} commission(s) marked paid.")
