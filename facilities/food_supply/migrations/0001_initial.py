# Generated manually
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('kitchens', '0001_initial'),
        ('vendors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='FoodSupply',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(choices=[('dairy', 'Dairy'), ('meat', 'Meat'), ('vegetables', 'Vegetables'), ('fruits', 'Fruits'), ('grains', 'Grains'), ('beverages', 'Beverages'), ('spices', 'Spices'), ('seafood', 'Seafood'), ('bakery', 'Bakery'), ('frozen', 'Frozen'), ('other', 'Other')], default='other', max_length=30)),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit', models.CharField(max_length=30)),
                ('price_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10)),
                ('expiration_date', models.DateField()),
                ('barcode', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('notes', models.TextField(blank=True)),
                ('total_wasted', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('kitchen', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='food_supplies', to='kitchens.kitchen')),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='food_supplies', to='vendors.vendor')),
            ],
            options={
                'db_table': 'food_supplies',
                'ordering': ['expiration_date', 'name'],
                'verbose_name_plural': 'food supplies',
                'indexes': [
                    models.Index(fields=['category'], name='food_suppl_categor_2c8e51_idx'),
                    models.Index(fields=['expiration_date'], name='food_suppl_expirat_7a4d13_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Recipe',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, unique=True)),
                ('description', models.TextField(blank=True)),
                ('servings', models.PositiveIntegerField(default=1)),
                ('selling_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10)),
                ('is_subrecipe', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='recipes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'recipes',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='KitchenFoodSupply',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('expiration_date', models.DateField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('food_supply', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kitchen_stock', to='food_supply.foodsupply')),
                ('kitchen', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock', to='kitchens.kitchen')),
            ],
            options={
                'db_table': 'kitchen_food_supplies',
            },
        ),
        migrations.AddConstraint(
            model_name='kitchenfoodsupply',
            constraint=models.UniqueConstraint(fields=('kitchen', 'food_supply'), name='unique_kitchen_food_supply'),
        ),
        migrations.CreateModel(
            name='KitchenBarcode',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('barcode', models.CharField(max_length=100, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('food_supply', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kitchen_barcodes', to='food_supply.foodsupply')),
                ('kitchen', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='barcodes', to='kitchens.kitchen')),
            ],
            options={
                'db_table': 'kitchen_barcodes',
            },
        ),
        migrations.AddConstraint(
            model_name='kitchenbarcode',
            constraint=models.UniqueConstraint(fields=('kitchen', 'food_supply'), name='unique_kitchen_barcode'),
        ),
        migrations.CreateModel(
            name='RecipeIngredient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('waste_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=6)),
                ('notes', models.CharField(blank=True, max_length=255)),
                ('food_supply', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='recipe_ingredients', to='food_supply.foodsupply')),
                ('recipe', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ingredients', to='food_supply.recipe')),
                ('subrecipe', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='used_in', to='food_supply.recipe')),
            ],
            options={
                'db_table': 'recipe_ingredients',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='FoodConsumption',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('expiration_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('food_supply', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='consumptions', to='food_supply.foodsupply')),
                ('kitchen', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='consumptions', to='kitchens.kitchen')),
                ('recipe', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='consumptions', to='food_supply.recipe')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='food_consumptions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'food_consumptions',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['created_at'], name='food_consu_created_3e9b72_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FoodDisposal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('reason', models.CharField(choices=[('expired', 'Expired'), ('damaged', 'Damaged'), ('quality_issues', 'Quality Issues'), ('overproduction', 'Overproduction'), ('ingredient_waste', 'Ingredient Waste'), ('other', 'Other')], max_length=30)),
                ('source', models.CharField(choices=[('direct', 'Direct'), ('recipe', 'Recipe')], default='direct', max_length=10)),
                ('cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('food_supply', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='disposals', to='food_supply.foodsupply')),
                ('kitchen', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='disposals', to='kitchens.kitchen')),
                ('recipe', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='disposals', to='food_supply.recipe')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='food_disposals', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'food_disposals',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['reason'], name='food_dispo_reason_8d1f06_idx'),
                    models.Index(fields=['created_at'], name='food_dispo_created_b52a9e_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RecipeUsage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('servings_used', models.PositiveIntegerField(default=1)),
                ('cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('waste_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('selling_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('profit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('kitchen', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='recipe_usages', to='kitchens.kitchen')),
                ('recipe', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='usages', to='food_supply.recipe')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='recipe_usages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'recipe_usages',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
