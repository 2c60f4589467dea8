from datetime import timedelta
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone
from ...models import FoodSupply, KitchenFoodSupply


class Command(BaseCommand):
    help = 'List food supplies and kitchen stock that are expired or expiring soon'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=settings.FOOD_SUPPLY_EXPIRING_SOON_DAYS,
            help='Report items expiring within this many days',
        )

    def handle(self, *args, **options):
        today = timezone.localdate()
        limit = today + timedelta(days=options['days'])

        supplies = FoodSupply.objects.filter(expiration_date__lte=limit).order_by('expiration_date')
        stock = KitchenFoodSupply.objects.filter(
            expiration_date__lte=limit, quantity__gt=0
        ).select_related('kitchen', 'food_supply').order_by('expiration_date')

        self.stdout.write(f'Supplies expiring by {limit.isoformat()}: {supplies.count()}')
        for supply in supplies:
            days_left = (supply.expiration_date - today).days
            line = f'  {supply.name}: {supply.quantity} {supply.unit}, {days_left} days left'
            if days_left < 0:
                self.stdout.write(self.style.ERROR(f'{line} (expired)'))
            else:
                self.stdout.write(self.style.WARNING(line))

        self.stdout.write(f'\nKitchen stock expiring by {limit.isoformat()}: {stock.count()}')
        for row in stock:
            days_left = (row.expiration_date - today).days
            self.stdout.write(f'  {row.kitchen.name} / {row.food_supply.name}: {row.quantity}, {days_left} days left')

        self.stdout.write(self.style.SUCCESS('\nDone'))
