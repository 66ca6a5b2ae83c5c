"""Management command to mark past-expiry vouchers as expired."""

from django.core.management.base import BaseCommand

from pointsman.services import vouchers


class Command(BaseCommand):
    help = "Set status=expired on active vouchers past their expiry date"

    def handle(self, *args, **options):
        count = vouchers.expire_stale()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} vouchers."))
