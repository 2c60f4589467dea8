from django.contrib import admin
from .models import (
    FoodSupply, KitchenFoodSupply, KitchenBarcode, FoodConsumption, FoodDisposal,
    Recipe, RecipeIngredient, RecipeUsage,
)


@admin.register(FoodSupply)
class FoodSupplyAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'quantity', 'unit', 'price_per_unit', 'expiration_date', 'kitchen', 'total_wasted']
    list_filter = ['category', 'kitchen', 'expiration_date']
    search_fields = ['name', 'barcode', 'notes']
    ordering = ['expiration_date']


@admin.register(KitchenFoodSupply)
class KitchenFoodSupplyAdmin(admin.ModelAdmin):
    list_display = ['kitchen', 'food_supply', 'quantity', 'expiration_date', 'updated_at']
    list_filter = ['kitchen']
    search_fields = ['food_supply__name']


@admin.register(KitchenBarcode)
class KitchenBarcodeAdmin(admin.ModelAdmin):
    list_display = ['barcode', 'kitchen', 'food_supply', 'created_at']
    list_filter = ['kitchen']
    search_fields = ['barcode', 'food_supply__name']


class RecipeIngredientInline(admin.TabularInline):
    model = RecipeIngredient
    fk_name = 'recipe'
    extra = 0


@admin.register(Recipe)
class RecipeAdmin(admin.ModelAdmin):
    list_display = ['name', 'servings', 'selling_price', 'is_subrecipe', 'created_by', 'created_at']
    list_filter = ['is_subrecipe']
    search_fields = ['name', 'description']
    inlines = [RecipeIngredientInline]


@admin.register(FoodConsumption)
class FoodConsumptionAdmin(admin.ModelAdmin):
    list_display = ['food_supply', 'kitchen', 'quantity', 'recipe', 'user', 'created_at']
    list_filter = ['kitchen', 'created_at']
    date_hierarchy = 'created_at'


@admin.register(FoodDisposal)
class FoodDisposalAdmin(admin.ModelAdmin):
    list_display = ['food_supply', 'kitchen', 'quantity', 'reason', 'source', 'cost', 'created_at']
    list_filter = ['reason', 'source', 'kitchen']
    date_hierarchy = 'created_at'


@admin.register(RecipeUsage)
class RecipeUsageAdmin(admin.ModelAdmin):
    list_display = ['recipe', 'kitchen', 'servings_used', 'cost', 'waste_cost', 'selling_price', 'profit', 'created_at']
    list_filter = ['kitchen', 'recipe']
    date_hierarchy = 'created_at'
