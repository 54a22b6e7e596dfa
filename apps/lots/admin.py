# ==========================================
# apps/lots/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from apps.lots.models import Lot, LotBatch, LotStatus, LotTimelineEntry, PackagingRun
from apps.lots.services import volume_summary


class LotBatchInline(admin.TabularInline):
    """Inline admin for batch contributions."""
    model = LotBatch
    extra = 0
    fields = ['batch', 'volume_contribution', 'created_at']
    readonly_fields = fields
    can_delete = False


class PackagingRunInline(admin.TabularInline):
    """Inline admin for packaging runs (append-only)."""
    model = PackagingRun
    extra = 0
    fields = ['package_type', 'quantity', 'volume_total', 'performed_by', 'performed_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class LotTimelineInline(admin.TabularInline):
    model = LotTimelineEntry
    extra = 0
    fields = ['event', 'previous_phase', 'new_phase', 'actor', 'data', 'created_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Lot)
class LotAdmin(admin.ModelAdmin):
    """
    Admin interface for Lots.

    Lots are changed only through the lot engine, so everything is read-only here.
    """

    list_display = [
        'lot_code',
        'lot_type',
        'phase',
        'status_badge',
        'total_volume',
        'remaining',
        'vessel',
        'created_at'
    ]
    list_filter = ['lot_type', 'phase', 'status', 'is_blend_result', 'created_at']
    search_fields = ['lot_code', 'batch_links__batch__batch_number']
    readonly_fields = [
        'lot_code',
        'lot_type',
        'phase',
        'status',
        'total_volume',
        'vessel',
        'is_blend_result',
        'batch_count',
        'parent_lot',
        'superseded_by',
        'completion_reason',
        'split_at',
        'blended_at',
        'completed_at',
        'version',
        'created_at',
        'updated_at'
    ]
    inlines = [LotBatchInline, PackagingRunInline, LotTimelineInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('lot_code', 'lot_type', 'phase', 'status', 'total_volume', 'vessel')
        }),
        ('Lineage', {
            'fields': ('is_blend_result', 'batch_count', 'parent_lot', 'superseded_by', 'completion_reason')
        }),
        ('Metadata', {
            'fields': ('split_at', 'blended_at', 'completed_at', 'version', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        return False

    def status_badge(self, obj):
        """Display lot status as colored badge."""
        color = '#6B8E5E' if obj.status == LotStatus.ACTIVE else '#888888'
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            color,
            obj.get_status_display(),
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def remaining(self, obj):
        """Litres left to package."""
        return volume_summary(obj)['remaining_volume']
    remaining.short_description = 'Remaining (L)'


@admin.register(PackagingRun)
class PackagingRunAdmin(admin.ModelAdmin):
    """Admin interface for Packaging Runs."""

    list_display = ['lot_code', 'package_type', 'quantity', 'volume_total', 'performed_by', 'performed_at']
    list_filter = ['package_type', 'performed_at']
    search_fields = ['lot_code', 'idempotency_key', 'notes']
    readonly_fields = [
        'lot',
        'lot_code',
        'package_type',
        'quantity',
        'volume_total',
        'performed_by',
        'performed_at',
        'idempotency_key'
    ]
    date_hierarchy = 'performed_at'
    ordering = ['-performed_at']
