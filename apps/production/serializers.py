from decimal import Decimal

from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from .models import Batch, GravityReading, ReadingType, Recipe, Vessel
from .units import GravityUnit


class RecipeSerializer(serializers.ModelSerializer):
    """Read-only recipe data."""

    class Meta:
        model = Recipe
        fields = [
            'id',
            'name',
            'style',
            'target_og',
            'target_fg',
            'batch_size',
            'yeast_strain',
            'ingredients',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class VesselSerializer(serializers.ModelSerializer):

    class Meta:
        model = Vessel
        fields = ['id', 'code', 'name', 'vessel_type', 'capacity', 'status', 'updated_at']
        read_only_fields = fields


class BatchSerializer(serializers.ModelSerializer):
    """Main serializer for batches."""

    recipe_name = serializers.CharField(read_only=True)
    created_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Batch
        fields = [
            'id',
            'batch_number',
            'recipe',
            'recipe_name',
            'planned_volume',
            'target_og',
            'target_fg',
            'original_gravity',
            'final_gravity',
            'current_gravity',
            'status',
            'notes',
            'created_by',
            'brew_date',
            'fermentation_started_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BatchCreateSerializer(serializers.Serializer):
    """Input for planning a batch."""

    recipe_id = serializers.UUIDField(required=False, allow_null=True)
    planned_volume = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    target_og = serializers.DecimalField(max_digits=6, decimal_places=4, required=False, allow_null=True)
    target_fg = serializers.DecimalField(max_digits=6, decimal_places=4, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StartBrewingSerializer(serializers.Serializer):
    original_gravity = serializers.DecimalField(
        max_digits=6, decimal_places=4, required=False, allow_null=True
    )


class StartFermentationSerializer(serializers.Serializer):
    vessel_id = serializers.UUIDField()
    volume = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )


class GravityReadingSerializer(serializers.ModelSerializer):

    recorded_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = GravityReading
        fields = [
            'id',
            'batch',
            'lot',
            'gravity',
            'temperature',
            'reading_type',
            'notes',
            'recorded_by',
            'recorded_at',
        ]
        read_only_fields = fields


class GravityReadingCreateSerializer(serializers.Serializer):
    """Input for a gravity reading; value may be in SG, °P or °Bx."""

    gravity = serializers.DecimalField(max_digits=8, decimal_places=4)
    unit = serializers.ChoiceField(choices=GravityUnit.choices, default=GravityUnit.SG)
    temperature = serializers.DecimalField(
        max_digits=4, decimal_places=1, required=False, allow_null=True
    )
    reading_type = serializers.ChoiceField(choices=ReadingType.choices, default=ReadingType.ROUTINE)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    lot_id = serializers.UUIDField(required=False, allow_null=True)


class BatchMetricsSerializer(serializers.Serializer):
    batch_id = serializers.UUIDField()
    batch_number = serializers.CharField()
    original_gravity = serializers.DecimalField(max_digits=6, decimal_places=4, allow_null=True)
    current_gravity = serializers.DecimalField(max_digits=6, decimal_places=4, allow_null=True)
    original_plato = serializers.DecimalField(max_digits=6, decimal_places=2, allow_null=True)
    current_plato = serializers.DecimalField(max_digits=6, decimal_places=2, allow_null=True)
    abv = serializers.DecimalField(max_digits=6, decimal_places=2)
    attenuation = serializers.DecimalField(max_digits=6, decimal_places=2)
    reading_count = serializers.IntegerField()


class GravityReadingResultSerializer(serializers.Serializer):
    reading = GravityReadingSerializer()
    metrics = BatchMetricsSerializer()


class GravityConvertQuerySerializer(serializers.Serializer):
    value = serializers.DecimalField(max_digits=8, decimal_places=4)
    unit = serializers.ChoiceField(choices=GravityUnit.choices, default=GravityUnit.SG)
