# fundapp/management/commands/export_commissions.py

import openpyxl
from django.core.management.base import BaseCommand, CommandError

from commissions.models import CommissionLog
from commissions.services import organization_commission_summary
from fundapp.exceptions import ValidationError
from fundapp.utils import parse_date

HEADERS = [
    "Donation", "Donation Amount", "Position", "Coordinator", "Name", "Role",
    "Level", "Percent", "Commission", "Status", "Paid At", "Reference",
]


class Command(BaseCommand):
    help = "Export commission rows to an Excel workbook with a summary sheet"

    def add_arguments(self, parser):
        parser.add_argument("output", help="Path of the .xlsx file to write")
        parser.add_argument("--start", help="From date YYYY-MM-DD")
        parser.add_argument("--end", help="To date YYYY-MM-DD")
        parser.add_argument("--status", choices=[s for s, _ in CommissionLog.STATUS_CHOICES])

    def handle(self, *args, **options):
        try:
            start = parse_date(options["start"], field="start") if options.get("start") else None
            end = parse_date(options["end"], field="end") if options.get("end") else None
        except ValidationError as exc:
            raise CommandError(exc.message)

        qs = CommissionLog.objects.all()
        if start:
            qs = qs.filter(created_at__date__gte=start)
        if end:
            qs = qs.filter(created_at__date__lte=end)
        if options.get("status"):
            qs = qs.filter(status=options["status"])

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Commissions"
        ws.append(HEADERS)
        count = 0
        for log in qs.order_by("donation_id", "position"):
            ws.append([
                log.donation_id,
                float(log.donation_amount),
                log.position,
                log.user_id,
                log.user_name,
                log.user_role,
                log.hierarchy_level,
                float(log.commission_percentage),
                float(log.commission_amount),
                log.status,
                log.paid_at.replace(tzinfo=None) if log.paid_at else None,
                log.payment_reference,
            ])
            count += 1

        summary = organization_commission_summary(start, end)
        ws2 = wb.create_sheet("Summary")
        ws2.append(["Metric", "Value"])
        for key in ("donationCount", "totalDonations", "totalCommission", "paid", "pending", "organizationFund", "recipients"):
            value = summary[key]
            ws2.append([key, value if isinstance(value, int) else float(value)])

        wb.save(options["output"])
        self.stdout.write(self.style.SUCCESS(f"✅ Exported {count} commission rows to {options['output']}"))
