"""
Install the built-in contract templates into a tenant
"""
import uuid

from django.core.management.base import BaseCommand, CommandError

from authentication.models import User
from authentication.roles import ROLE_ADMIN
from contracts.services import TemplateService


class Command(BaseCommand):
    help = 'Seed the predefined contract templates for a tenant (existing ones are skipped)'

    def add_arguments(self, parser):
        parser.add_argument('--tenant-id', required=True, help='Tenant UUID')
        parser.add_argument('--user-id', help='Owner of the seeded templates (defaults to the first tenant admin)')

    def handle(self, *args, **options):
        try:
            tenant_id = uuid.UUID(options['tenant_id'])
        except ValueError:
            raise CommandError(f"Invalid tenant id: {options['tenant_id']}")

        if options.get('user_id'):
            try:
                user_id = uuid.UUID(options['user_id'])
            except ValueError:
                raise CommandError(f"Invalid user id: {options['user_id']}")
        else:
            admin = User.objects.filter(tenant_id=tenant_id, role=ROLE_ADMIN).order_by('date_joined').first()
            if admin is None:
                raise CommandError('No admin found for this tenant; pass --user-id')
            user_id = admin.user_id

        created = TemplateService.seed_predefined(tenant_id, user_id)
        for template in created:
            self.stdout.write(f"  + {template.name} ({template.predefined_key})")
        self.stdout.write(self.style.SUCCESS(f"Seeded {len(created)} template(s) for tenant {tenant_id}"))
