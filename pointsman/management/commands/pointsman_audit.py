"""Management command to check accounts against their ledger."""

from django.core.management.base import BaseCommand, CommandError

from pointsman.exceptions import AccountNotFound
from pointsman.services import ledger


class Command(BaseCommand):
    help = "Verify balance == earned - redeemed == sum(ledger) for loyalty accounts"

    def add_arguments(self, parser):
        parser.add_argument(
            "--user",
            dest="user_id",
            default=None,
            help="Audit a single user instead of every account",
        )

    def handle(self, *args, **options):
        if options["user_id"]:
            try:
                audits = [ledger.audit(options["user_id"])]
            except AccountNotFound as exc:
                raise CommandError(exc.message) from exc
        else:
            audits = ledger.audit_all()

        broken = [a for a in audits if not a.is_consistent]
        for audit in broken:
            self.stdout.write(
                self.style.ERROR(
                    f"{audit.user_id}: balance={audit.points_balance} "
                    f"earned={audit.total_earned} redeemed={audit.total_redeemed} "
                    f"ledger={audit.ledger_sum}"
                )
            )

        if broken:
            raise CommandError(f"{len(broken)} of {len(audits)} accounts inconsistent.")

        self.stdout.write(self.style.SUCCESS(f"Audited {len(audits)} accounts, all consistent."))
