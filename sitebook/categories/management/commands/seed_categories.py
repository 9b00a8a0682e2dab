from django.core.management.base import BaseCommand
from django.db import transaction

from sitebook.core.models import Organization
from sitebook.categories.defaults import ensure_category_types, seed_organization_categories


class Command(BaseCommand):
    help = "Create global category types and give every organization its default items"

    def add_arguments(self, parser):
        parser.add_argument(
            "--organization",
            type=int,
            help="Only seed this organization id",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        types = ensure_category_types()
        self.stdout.write(f"Category types present: {', '.join(sorted(types))}")

        organizations = Organization.objects.all()
        if options.get("organization"):
            organizations = organizations.filter(pk=options["organization"])

        total = 0
        for organization in organizations:
            created = seed_organization_categories(organization)
            total += len(created)
            if created:
                self.stdout.write(f"{organization.name}: added {len(created)} item(s)")

        self.stdout.write(self.style.SUCCESS(f"Done. Added {total} category item(s)."))
