# ==========================================
# apps/production/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from apps.production.models import Batch, GravityReading, Recipe, Vessel, VesselStatus


VESSEL_STATUS_COLORS = {
    VesselStatus.AVAILABLE: '#6B8E5E',
    VesselStatus.IN_USE: '#C8A165',
    VesselStatus.NEEDS_CIP: '#5C7FB8',
    VesselStatus.MAINTENANCE: '#B85C5C',
}


class GravityReadingInline(admin.TabularInline):
    """Inline admin for gravity readings."""
    model = GravityReading
    extra = 0
    fields = ['gravity', 'temperature', 'reading_type', 'lot', 'recorded_by', 'recorded_at']
    readonly_fields = ['recorded_at']


@admin.register(Recipe)
class RecipeAdmin(admin.ModelAdmin):
    """Admin interface for Recipes."""

    list_display = ['name', 'style', 'target_og', 'target_fg', 'batch_size', 'yeast_strain']
    list_filter = ['style']
    search_fields = ['name', 'style', 'yeast_strain']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Vessel)
class VesselAdmin(admin.ModelAdmin):
    """Admin interface for Vessels."""

    list_display = ['code', 'name', 'vessel_type', 'capacity', 'status_badge']
    list_filter = ['vessel_type', 'status']
    search_fields = ['code', 'name']
    ordering = ['code']

    actions = ['mark_available']

    def status_badge(self, obj):
        """Display vessel status as colored badge."""
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            VESSEL_STATUS_COLORS.get(obj.status, '#888888'),
            obj.get_status_display(),
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def mark_available(self, request, queryset):
        """Mark selected vessels as cleaned and available."""
        updated = queryset.update(status=VesselStatus.AVAILABLE)
        self.message_user(request, f"Marked {updated} vessels as available")
    mark_available.short_description = 'Mark as cleaned / available'


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    """Admin interface for Batches."""

    list_display = [
        'batch_number',
        'recipe',
        'planned_volume',
        'status',
        'original_gravity',
        'current_gravity',
        'created_at'
    ]
    list_filter = ['status', 'created_at']
    search_fields = ['batch_number', 'recipe__name', 'notes']
    readonly_fields = ['batch_number', 'created_at', 'updated_at']
    inlines = [GravityReadingInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('batch_number', 'recipe', 'planned_volume', 'status', 'created_by', 'notes')
        }),
        ('Gravity', {
            'fields': ('target_og', 'target_fg', 'original_gravity', 'current_gravity', 'final_gravity')
        }),
        ('Metadata', {
            'fields': ('brew_date', 'fermentation_started_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
