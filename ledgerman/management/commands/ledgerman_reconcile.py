"""Management command to verify journal/balance consistency."""

from django.core.management.base import BaseCommand, CommandError

from ledgerman.services import ledger


class Command(BaseCommand):
    help = "Check that every account balance equals the sum of its journal entries"

    def add_arguments(self, parser):
        parser.add_argument(
            "--user",
            default=None,
            help="Only check the accounts of this user id",
        )

    def handle(self, *args, **options):
        results = ledger.reconcile(user_id=options["user"])
        mismatches = [r for r in results if not r.consistent]

        for r in mismatches:
            self.stderr.write(
                f"Account {r.account_id} ({r.user_id}/{r.kind}): "
                f"balance={r.balance} journal={r.journal_total}"
            )

        if mismatches:
            raise CommandError(f"{len(mismatches)} of {len(results)} accounts are inconsistent.")

        self.stdout.write(
            self.style.SUCCESS(f"Checked {len(results)} accounts: all consistent.")
        )
