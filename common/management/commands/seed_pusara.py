# common/management/commands/seed_pusara.py
from django.core.management.base import BaseCommand
from django.db import transaction

from kits.models import FuneralKit, KitType
from staff.models import NOT_NEEDED_PEMANDI_ID, Staff, StaffType


class Command(BaseCommand):
    help = "Create the reference rows e-PUSARA needs: the 'Tidak Perlu' staff entry and the funeral kit types."

    def add_arguments(self, parser):
        parser.add_argument(
            "--kit-quantity",
            type=int,
            default=0,
            help="Initial stock for kit types created by this run (existing kits are left alone).",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        qty = max(options["kit_quantity"], 0)

        _, created = Staff.objects.get_or_create(
            pk=NOT_NEEDED_PEMANDI_ID,
            defaults={
                "name": "Tidak Perlu",
                "staff_type": StaffType.PEMANDI_JENAZAH,
                "is_active": True,
            },
        )
        self.stdout.write(f"Staff {NOT_NEEDED_PEMANDI_ID}: {'created' if created else 'exists'}")

        for kit_type in KitType.values:
            _, created = FuneralKit.objects.get_or_create(
                kit_type=kit_type,
                defaults={"available_quantity": qty},
            )
            self.stdout.write(f"FuneralKit {kit_type}: {'created' if created else 'exists'}")

        self.stdout.write(self.style.SUCCESS("e-PUSARA reference data ready."))
