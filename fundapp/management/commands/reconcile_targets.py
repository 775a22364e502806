# fundapp/management/commands/reconcile_targets.py

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from fundapp.engine.lock import run_with_lock
from fundapp.engine.propagation import PropagationEngine
from fundapp.exceptions import ValidationError
from fundapp.utils import parse_date


class Command(BaseCommand):
    help = "Recompute every team collection bottom-up (guarded by the per-date lock)"

    def add_arguments(self, parser):
        parser.add_argument("--date", help="Run date YYYY-MM-DD (default today)")
        parser.add_argument("--force", action="store_true", help="Skip the lock and cooldown")

    def handle(self, *args, **options):
        try:
            run_date = parse_date(options["date"], field="date") if options.get("date") else timezone.localdate()
        except ValidationError as exc:
            raise CommandError(exc.message)
        engine = PropagationEngine()

        if options["force"]:
            checked = engine.reconcile_all()
        else:
            checked = run_with_lock(run_date, lambda _: engine.reconcile_all())

        if checked is None:
            self.stdout.write(self.style.WARNING(f"⛔ Reconcile for {run_date} skipped (running, finished or cooling down)"))
            return
        self.stdout.write(self.style.SUCCESS(f"✅ Reconciled {checked} targets for {run_date}"))
