from decimal import Decimal

from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from .models import Lot, LotBatch, LotPhase, LotTimelineEntry, PackageType, PackagingRun


class LotBatchSerializer(serializers.ModelSerializer):
    """Contribution of a batch to a lot."""

    batch_number = serializers.CharField(source='batch.batch_number', read_only=True)

    class Meta:
        model = LotBatch
        fields = ['batch', 'batch_number', 'volume_contribution']
        read_only_fields = fields


class LotSerializer(serializers.ModelSerializer):
    """Main serializer for lots."""

    vessel_code = serializers.CharField(source='vessel.code', read_only=True, default=None)
    batches = LotBatchSerializer(source='batch_links', many=True, read_only=True)

    class Meta:
        model = Lot
        fields = [
            'id',
            'lot_code',
            'lot_type',
            'phase',
            'status',
            'total_volume',
            'vessel',
            'vessel_code',
            'is_blend_result',
            'batch_count',
            'batches',
            'parent_lot',
            'superseded_by',
            'completion_reason',
            'split_at',
            'blended_at',
            'completed_at',
            'version',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class LotStatusBatchSerializer(serializers.Serializer):
    batch_id = serializers.UUIDField()
    batch_number = serializers.CharField()
    volume_contribution = serializers.DecimalField(max_digits=10, decimal_places=2)


class LotStatusSerializer(serializers.Serializer):
    """Lot state plus volume reconciliation (response shape)."""

    id = serializers.UUIDField()
    lot_code = serializers.CharField()
    lot_type = serializers.CharField()
    phase = serializers.CharField()
    status = serializers.CharField()
    version = serializers.IntegerField()
    is_blend_result = serializers.BooleanField()
    batch_count = serializers.IntegerField()
    completion_reason = serializers.CharField(allow_null=True)
    vessel = serializers.CharField(allow_null=True)
    superseded_by = serializers.CharField(allow_null=True)
    batches = LotStatusBatchSerializer(many=True)
    total_volume = serializers.DecimalField(max_digits=10, decimal_places=2)
    packaged_volume = serializers.DecimalField(max_digits=10, decimal_places=2)
    remaining_volume = serializers.DecimalField(max_digits=10, decimal_places=2)
    progress_percent = serializers.DecimalField(max_digits=5, decimal_places=2)


class LotRefSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    lot_code = serializers.CharField()
    lot_type = serializers.CharField()
    phase = serializers.CharField()
    status = serializers.CharField()
    total_volume = serializers.DecimalField(max_digits=10, decimal_places=2)


class LotLineageSerializer(serializers.Serializer):
    lot = LotRefSerializer()
    parent = LotRefSerializer(allow_null=True)
    children = LotRefSerializer(many=True)
    superseded_by = LotRefSerializer(allow_null=True)
    sources = LotRefSerializer(many=True)


class LotTimelineEntrySerializer(serializers.ModelSerializer):

    actor = UserMinimalSerializer(read_only=True)

    class Meta:
        model = LotTimelineEntry
        fields = ['id', 'event', 'previous_phase', 'new_phase', 'actor', 'data', 'created_at']
        read_only_fields = fields


class PackagingRunSerializer(serializers.ModelSerializer):

    performed_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = PackagingRun
        fields = [
            'id',
            'lot',
            'lot_code',
            'package_type',
            'quantity',
            'volume_total',
            'performed_by',
            'performed_at',
            'notes',
            'idempotency_key',
        ]
        read_only_fields = fields


# ==========================================
# Input serializers
# ==========================================

class AdvancePhaseSerializer(serializers.Serializer):
    target_phase = serializers.ChoiceField(choices=LotPhase.choices)
    expected_version = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class CompleteLotSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class SplitTargetSerializer(serializers.Serializer):
    vessel_id = serializers.UUIDField()
    volume = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )

    def validate(self, attrs):
        if attrs.get('volume') is None and attrs.get('percentage') is None:
            raise serializers.ValidationError("Either volume or percentage is required.")
        return attrs


class SplitBatchSerializer(serializers.Serializer):
    """Input for splitting a batch's lot across vessels."""

    batch_id = serializers.UUIDField()
    volume = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    targets = SplitTargetSerializer(many=True)


class BlendBatchesSerializer(serializers.Serializer):
    """Input for blending batches into one vessel."""

    batch_ids = serializers.ListField(child=serializers.UUIDField(), min_length=2)
    vessel_id = serializers.UUIDField()


class PackagingRunCreateSerializer(serializers.Serializer):
    """Input for recording a packaging run."""

    package_type = serializers.ChoiceField(choices=PackageType.choices)
    quantity = serializers.IntegerField(min_value=1)
    volume = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    idempotency_key = serializers.CharField(
        max_length=64, required=False, allow_null=True, allow_blank=True
    )
    confirm_overshoot = serializers.BooleanField(default=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# ==========================================
# Response serializers (schema docs)
# ==========================================

class VolumeSummarySerializer(serializers.Serializer):
    total_volume = serializers.DecimalField(max_digits=10, decimal_places=2)
    packaged_volume = serializers.DecimalField(max_digits=10, decimal_places=2)
    remaining_volume = serializers.DecimalField(max_digits=10, decimal_places=2)
    progress_percent = serializers.DecimalField(max_digits=5, decimal_places=2)


class PackagingRunResultSerializer(serializers.Serializer):
    run = PackagingRunSerializer()
    summary = VolumeSummarySerializer()


class SplitResultSerializer(serializers.Serializer):
    children = LotSerializer(many=True)
    unassigned_volume = serializers.DecimalField(max_digits=10, decimal_places=2)


class BlendResultSerializer(serializers.Serializer):
    lot = LotSerializer()
    warnings = serializers.ListField(child=serializers.CharField())
