from decimal import Decimal
from django.db import transaction
from rest_framework import serializers
from facilities.kitchens.models import Kitchen
from .analytics import EXPIRING_DAYS
from .inventory import recipe_batch_cost, money
from .models import (
    FoodSupply, KitchenFoodSupply, KitchenBarcode, FoodConsumption, FoodDisposal,
    Recipe, RecipeIngredient, RecipeUsage,
)


class FoodSupplySerializer(serializers.ModelSerializer):
    kitchen = serializers.PrimaryKeyRelatedField(queryset=Kitchen.objects.all(), required=False, allow_null=True)
    kitchen_name = serializers.CharField(source='kitchen.name', read_only=True, default=None)
    vendor_name = serializers.CharField(source='vendor.name', read_only=True, default=None)
    days_until_expiration = serializers.IntegerField(read_only=True)
    is_expiring = serializers.SerializerMethodField()
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = FoodSupply
        fields = ['id', 'name', 'category', 'quantity', 'unit', 'price_per_unit', 'expiration_date',
                  'kitchen', 'kitchen_name', 'vendor', 'vendor_name', 'barcode', 'notes', 'total_wasted',
                  'days_until_expiration', 'is_expiring', 'is_expired', 'created_at', 'updated_at']
        read_only_fields = ['total_wasted', 'created_at', 'updated_at']
        extra_kwargs = {
            'quantity': {'required': True},
            'price_per_unit': {'required': True},
        }

    def get_is_expiring(self, obj):
        return 0 <= obj.days_until_expiration <= EXPIRING_DAYS

    def get_is_expired(self, obj):
        return obj.days_until_expiration < 0

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value

    def validate_unit(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Unit is required')
        return value

    def validate_quantity(self, value):
        if value < 0:
            raise serializers.ValidationError('Quantity cannot be negative')
        return value

    def validate_price_per_unit(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value

    def validate_barcode(self, value):
        if value is None:
            return None
        value = value.strip().upper()
        return value or None


class KitchenFoodSupplySerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='food_supply.name', read_only=True)
    category = serializers.CharField(source='food_supply.category', read_only=True)
    unit = serializers.CharField(source='food_supply.unit', read_only=True)
    price_per_unit = serializers.DecimalField(source='food_supply.price_per_unit', max_digits=10,
                                              decimal_places=2, read_only=True)

    class Meta:
        model = KitchenFoodSupply
        fields = ['id', 'kitchen', 'food_supply', 'name', 'category', 'unit', 'price_per_unit',
                  'quantity', 'expiration_date', 'updated_at']


class KitchenBarcodeSerializer(serializers.ModelSerializer):
    food_supply_name = serializers.CharField(source='food_supply.name', read_only=True)
    kitchen_name = serializers.CharField(source='kitchen.name', read_only=True)

    class Meta:
        model = KitchenBarcode
        fields = ['id', 'kitchen', 'kitchen_name', 'food_supply', 'food_supply_name', 'barcode', 'created_at']


class FoodConsumptionSerializer(serializers.ModelSerializer):
    food_supply_name = serializers.CharField(source='food_supply.name', read_only=True)
    unit = serializers.CharField(source='food_supply.unit', read_only=True)
    kitchen_name = serializers.CharField(source='kitchen.name', read_only=True)
    recipe_name = serializers.CharField(source='recipe.name', read_only=True, default=None)
    user_email = serializers.SerializerMethodField()
    cost = serializers.SerializerMethodField()

    class Meta:
        model = FoodConsumption
        fields = ['id', 'food_supply', 'food_supply_name', 'unit', 'kitchen', 'kitchen_name',
                  'recipe', 'recipe_name', 'quantity', 'cost', 'expiration_date', 'notes',
                  'user', 'user_email', 'created_at']

    def get_user_email(self, obj):
        return obj.user.email if obj.user_id else None

    def get_cost(self, obj):
        return float(obj.quantity * obj.food_supply.price_per_unit)


class FoodDisposalSerializer(serializers.ModelSerializer):
    food_supply_name = serializers.CharField(source='food_supply.name', read_only=True)
    unit = serializers.CharField(source='food_supply.unit', read_only=True)
    recipe_name = serializers.CharField(source='recipe.name', read_only=True, default=None)

    class Meta:
        model = FoodDisposal
        fields = ['id', 'food_supply', 'food_supply_name', 'unit', 'kitchen', 'recipe', 'recipe_name',
                  'quantity', 'reason', 'source', 'cost', 'notes', 'user', 'created_at']


class RecipeIngredientSerializer(serializers.ModelSerializer):
    food_supply = serializers.PrimaryKeyRelatedField(queryset=FoodSupply.objects.all(), required=False, allow_null=True)
    subrecipe = serializers.PrimaryKeyRelatedField(queryset=Recipe.objects.all(), required=False, allow_null=True)
    food_supply_name = serializers.CharField(source='food_supply.name', read_only=True, default=None)
    subrecipe_name = serializers.CharField(source='subrecipe.name', read_only=True, default=None)
    unit = serializers.CharField(source='food_supply.unit', read_only=True, default=None)

    class Meta:
        model = RecipeIngredient
        fields = ['id', 'food_supply', 'food_supply_name', 'unit', 'subrecipe', 'subrecipe_name',
                  'quantity', 'waste_percentage', 'notes']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value

    def validate_waste_percentage(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError('Waste percentage must be between 0 and 100')
        return value

    def validate(self, attrs):
        has_supply = attrs.get('food_supply') is not None
        has_subrecipe = attrs.get('subrecipe') is not None
        if has_supply == has_subrecipe:
            raise serializers.ValidationError('Each ingredient needs either a food supply or a sub-recipe')
        return attrs


class RecipeSerializer(serializers.ModelSerializer):
    """
    Recipe with nested ingredients.

    Ingredient writes arrive through context['ingredients_data'] and replace
    the existing list; None leaves the ingredients untouched.
    """
    ingredients = RecipeIngredientSerializer(many=True, read_only=True)
    total_cost = serializers.SerializerMethodField()
    cost_per_serving = serializers.SerializerMethodField()

    class Meta:
        model = Recipe
        fields = ['id', 'name', 'description', 'servings', 'selling_price', 'is_subrecipe',
                  'ingredients', 'total_cost', 'cost_per_serving', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def get_total_cost(self, obj):
        return float(recipe_batch_cost(obj))

    def get_cost_per_serving(self, obj):
        return float(money(recipe_batch_cost(obj) / Decimal(obj.servings or 1)))

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Recipe name is required')
        return value

    def validate_servings(self, value):
        if value < 1:
            raise serializers.ValidationError('Servings must be at least 1')
        return value

    def validate(self, attrs):
        ingredients_data = self.context.get('ingredients_data')
        if ingredients_data is None:
            return attrs
        if not isinstance(ingredients_data, list):
            raise serializers.ValidationError({'ingredients': 'Ingredients must be a list'})
        ingredient_serializer = RecipeIngredientSerializer(data=ingredients_data, many=True)
        if not ingredient_serializer.is_valid():
            raise serializers.ValidationError({'ingredients': ingredient_serializer.errors})
        if self.instance is not None:
            for item in ingredient_serializer.validated_data:
                if item.get('subrecipe') and item['subrecipe'].pk == self.instance.pk:
                    raise serializers.ValidationError({'ingredients': 'A recipe cannot use itself as a sub-recipe'})
        attrs['_ingredients'] = ingredient_serializer.validated_data
        return attrs

    def _replace_ingredients(self, recipe, ingredients):
        recipe.ingredients.all().delete()
        RecipeIngredient.objects.bulk_create([
            RecipeIngredient(recipe=recipe, **item) for item in ingredients
        ])

    def create(self, validated_data):
        ingredients = validated_data.pop('_ingredients', None)
        with transaction.atomic():
            recipe = super().create(validated_data)
            if ingredients:
                self._replace_ingredients(recipe, ingredients)
        return recipe

    def update(self, instance, validated_data):
        ingredients = validated_data.pop('_ingredients', None)
        with transaction.atomic():
            recipe = super().update(instance, validated_data)
            if ingredients is not None:
                self._replace_ingredients(recipe, ingredients)
        return recipe


class RecipeUsageSerializer(serializers.ModelSerializer):
    recipe_name = serializers.CharField(source='recipe.name', read_only=True)
    kitchen_name = serializers.CharField(source='kitchen.name', read_only=True)

    class Meta:
        model = RecipeUsage
        fields = ['id', 'recipe', 'recipe_name', 'kitchen', 'kitchen_name', 'servings_used', 'cost',
                  'waste_cost', 'selling_price', 'profit', 'notes', 'user', 'created_at']
