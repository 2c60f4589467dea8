from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils import timezone


class FoodSupply(models.Model):
    """Perishable good tracked in the food inventory"""
    CATEGORY_CHOICES = [
        ('dairy', 'Dairy'),
        ('meat', 'Meat'),
        ('vegetables', 'Vegetables'),
        ('fruits', 'Fruits'),
        ('grains', 'Grains'),
        ('beverages', 'Beverages'),
        ('spices', 'Spices'),
        ('seafood', 'Seafood'),
        ('bakery', 'Bakery'),
        ('frozen', 'Frozen'),
        ('other', 'Other'),
    ]

    name = models.CharField(max_length=255)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default='other')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    unit = models.CharField(max_length=30)
    price_per_unit = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    expiration_date = models.DateField()
    kitchen = models.ForeignKey('kitchens.Kitchen', on_delete=models.SET_NULL, null=True, blank=True, related_name='food_supplies')
    vendor = models.ForeignKey('vendors.Vendor', on_delete=models.SET_NULL, null=True, blank=True, related_name='food_supplies')
    barcode = models.CharField(max_length=100, unique=True, null=True, blank=True)
    notes = models.TextField(blank=True)
    total_wasted = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.quantity} {self.unit})"

    @property
    def days_until_expiration(self):
        return (self.expiration_date - timezone.localdate()).days

    class Meta:
        db_table = 'food_supplies'
        ordering = ['expiration_date', 'name']
        verbose_name_plural = 'food supplies'
        indexes = [
            models.Index(fields=['category'], name='food_suppl_categor_2c8e51_idx'),
            models.Index(fields=['expiration_date'], name='food_suppl_expirat_7a4d13_idx'),
        ]


class KitchenFoodSupply(models.Model):
    """Stock of a food supply held by one kitchen"""
    kitchen = models.ForeignKey('kitchens.Kitchen', on_delete=models.CASCADE, related_name='stock')
    food_supply = models.ForeignKey(FoodSupply, on_delete=models.CASCADE, related_name='kitchen_stock')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    expiration_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.food_supply.name} @ {self.kitchen.name}: {self.quantity}"

    class Meta:
        db_table = 'kitchen_food_supplies'
        constraints = [
            models.UniqueConstraint(fields=['kitchen', 'food_supply'], name='unique_kitchen_food_supply'),
        ]


class KitchenBarcode(models.Model):
    """Barcode printed for a supply stocked in a kitchen"""
    kitchen = models.ForeignKey('kitchens.Kitchen', on_delete=models.CASCADE, related_name='barcodes')
    food_supply = models.ForeignKey(FoodSupply, on_delete=models.CASCADE, related_name='kitchen_barcodes')
    barcode = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.barcode

    class Meta:
        db_table = 'kitchen_barcodes'
        constraints = [
            models.UniqueConstraint(fields=['kitchen', 'food_supply'], name='unique_kitchen_barcode'),
        ]


class Recipe(models.Model):
    """Recipe whose ingredient quantities yield `servings` servings"""
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    servings = models.PositiveIntegerField(default=1)
    selling_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    is_subrecipe = models.BooleanField(default=False)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='recipes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'recipes'
        ordering = ['name']


class RecipeIngredient(models.Model):
    """A food supply or a sub-recipe used by a recipe"""
    recipe = models.ForeignKey(Recipe, on_delete=models.CASCADE, related_name='ingredients')
    food_supply = models.ForeignKey(FoodSupply, on_delete=models.PROTECT, null=True, blank=True, related_name='recipe_ingredients')
    subrecipe = models.ForeignKey(Recipe, on_delete=models.PROTECT, null=True, blank=True, related_name='used_in')
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    waste_percentage = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0'))
    notes = models.CharField(max_length=255, blank=True)

    def __str__(self):
        target = self.food_supply.name if self.food_supply_id else self.subrecipe.name
        return f"{self.quantity} x {target}"

    @property
    def waste_fraction(self):
        """waste_percentage is always a percentage: 10 means a tenth of the quantity"""
        return (self.waste_percentage or Decimal('0')) / Decimal('100')

    class Meta:
        db_table = 'recipe_ingredients'
        ordering = ['id']


class FoodConsumption(models.Model):
    """Quantity of a supply used in a kitchen"""
    food_supply = models.ForeignKey(FoodSupply, on_delete=models.CASCADE, related_name='consumptions')
    kitchen = models.ForeignKey('kitchens.Kitchen', on_delete=models.CASCADE, related_name='consumptions')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='food_consumptions')
    recipe = models.ForeignKey(Recipe, on_delete=models.SET_NULL, null=True, blank=True, related_name='consumptions')
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    expiration_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.quantity} {self.food_supply.unit} of {self.food_supply.name}"

    class Meta:
        db_table = 'food_consumptions'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['created_at'], name='food_consu_created_3e9b72_idx'),
        ]


class FoodDisposal(models.Model):
    """Wasted quantity of a supply"""
    REASON_CHOICES = [
        ('expired', 'Expired'),
        ('damaged', 'Damaged'),
        ('quality_issues', 'Quality Issues'),
        ('overproduction', 'Overproduction'),
        ('ingredient_waste', 'Ingredient Waste'),
        ('other', 'Other'),
    ]

    SOURCE_CHOICES = [
        ('direct', 'Direct'),
        ('recipe', 'Recipe'),
    ]

    food_supply = models.ForeignKey(FoodSupply, on_delete=models.CASCADE, related_name='disposals')
    kitchen = models.ForeignKey('kitchens.Kitchen', on_delete=models.SET_NULL, null=True, blank=True, related_name='disposals')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='food_disposals')
    recipe = models.ForeignKey(Recipe, on_delete=models.SET_NULL, null=True, blank=True, related_name='disposals')
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    reason = models.CharField(max_length=30, choices=REASON_CHOICES)
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='direct')
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.quantity} {self.food_supply.unit} of {self.food_supply.name} ({self.reason})"

    class Meta:
        db_table = 'food_disposals'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['reason'], name='food_dispo_reason_8d1f06_idx'),
            models.Index(fields=['created_at'], name='food_dispo_created_b52a9e_idx'),
        ]


class RecipeUsage(models.Model):
    """Servings of a recipe prepared in a kitchen"""
    recipe = models.ForeignKey(Recipe, on_delete=models.CASCADE, related_name='usages')
    kitchen = models.ForeignKey('kitchens.Kitchen', on_delete=models.CASCADE, related_name='recipe_usages')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='recipe_usages')
    servings_used = models.PositiveIntegerField(default=1)
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    waste_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    profit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.servings_used} x {self.recipe.name} @ {self.kitchen.name}"

    class Meta:
        db_table = 'recipe_usages'
        ordering = ['-created_at', '-id']
