from django.core.management.base import BaseCommand, CommandError

from sitebook.core.models import Organization
from sitebook.finance import store
from sitebook.parties.models import Party


class Command(BaseCommand):
    help = 'Recomputes party balances from expenses and payments and prints them'

    def add_arguments(self, parser):
        parser.add_argument(
            '--organization',
            type=int,
            help='Only report this organization id',
        )
        parser.add_argument(
            '--type',
            choices=[choice for choice, _label in Party.TYPE_CHOICES],
            help='Only report parties of this type',
        )
        parser.add_argument(
            '--outstanding-only',
            action='store_true',
            help='Skip parties whose balance is zero or negative',
        )

    def handle(self, *args, **options):
        organizations = Organization.objects.all().order_by('pk')
        if options.get('organization'):
            organizations = organizations.filter(pk=options['organization'])
            if not organizations.exists():
                raise CommandError(f"Organization {options['organization']} does not exist")

        for organization in organizations:
            parties = Party.objects.filter(organization=organization).order_by('type', 'name')
            if options.get('type'):
                parties = parties.filter(type=options['type'])

            self.stdout.write(f"\n{organization.name} (ID: {organization.pk}): {parties.count()} parties")
            for party in parties:
                stats = store.party_stats(organization, party)
                balance = stats['balance']
                if options['outstanding_only'] and balance <= 0:
                    continue
                line = (
                    f"  - {party.name} [{party.type}] expenses={stats['total_expenses']} "
                    f"paid={stats['total_payments']} balance={balance}"
                )
                if balance < 0:
                    self.stdout.write(self.style.WARNING(f"{line} (overpaid)"))
                else:
                    self.stdout.write(line)

            summary = store.credits_summary(organization)
            self.stdout.write(self.style.SUCCESS(f"  Total outstanding to creditors: {summary['total']}"))
