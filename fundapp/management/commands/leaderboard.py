# fundapp/management/commands/leaderboard.py

from django.core.management.base import BaseCommand, CommandError

from fundapp.engine.leaderboard import SCOPES, Leaderboard
from fundapp.exceptions import FundraisingError
from fundapp.roles import REGION_FIELDS


class Command(BaseCommand):
    help = "Print a ranked collection table"

    def add_arguments(self, parser):
        parser.add_argument("--scope", choices=SCOPES, default="national")
        parser.add_argument("--requester", help="Coordinator id for the team scope")
        parser.add_argument("--limit", type=int)
        for name in REGION_FIELDS:
            parser.add_argument(f"--{name}")

    def handle(self, *args, **options):
        region = {f: options[f] for f in REGION_FIELDS if options.get(f)}
        try:
            entries = Leaderboard().rank(
                options["scope"],
                requester_id=options.get("requester"),
                region=region,
                limit=options.get("limit"),
            )
        except FundraisingError as exc:
            raise CommandError(exc.message)

        if not entries:
            self.stdout.write(self.style.WARNING("No targets to rank"))
            return

        self.stdout.write(f"{'#':>3}  {'ID':<12} {'Name':<24} {'Role':<22} {'Collected':>14} {'Target':>14} {'%':>7}")
        for e in entries:
            self.stdout.write(
                f"{e['rank']:>3}  {e['userId']:<12} {e['name'][:24]:<24} {e['role']:<22} "
                f"{e['totalCollected']:>14} {e['targetAmount']:>14} {e['achievementPercentage']:>7}"
            )
