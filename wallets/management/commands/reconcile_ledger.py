from django.core.management.base import BaseCommand, CommandError

from wallets.services import ReconciliationService


class Command(BaseCommand):
    help = "Replays the ledger and compares it with every account balance"

    def add_arguments(self, parser):
        parser.add_argument(
            "--account",
            help="Only check the account with this uuid.",
        )

    def handle(self, *args, **options):
        if options["account"]:
            result = ReconciliationService.check_account(options["account"])
            mismatches = [] if result.ok else [result]
        else:
            mismatches = ReconciliationService.check_all()

        for m in mismatches:
            self.stdout.write(
                self.style.ERROR(
                    f"{m.account_uuid}: balance={m.balance} ledger={m.replayed}"
                )
            )

        if mismatches:
            raise CommandError(f"{len(mismatches)} account(s) out of balance.")
        self.stdout.write(self.style.SUCCESS("Ledger balanced."))
