# accounts/management/commands/seed_permissions.py

from django.core.management.base import BaseCommand

from accounts.models import CompanyPermission
from accounts.permission_defaults import PERMISSION_DESCRIPTIONS, all_permission_codes


class Command(BaseCommand):
    help = "Seed the permission catalog used by role defaults"

    def handle(self, *args, **options):
        created = 0
        updated = 0

        for code in sorted(all_permission_codes()):
            _, was_created = CompanyPermission.objects.update_or_create(
                code=code,
                defaults={
                    "module": code.split(".")[0],
                    "description": PERMISSION_DESCRIPTIONS.get(code, ""),
                },
            )
            if was_created:
                created += 1
            else:
                updated += 1

        self.stdout.write(self.style.SUCCESS(f"Done! Created {created}, updated {updated}."))
