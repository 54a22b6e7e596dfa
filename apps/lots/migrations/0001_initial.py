# Generated manually for the brewery lots app

import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


PHASE_CHOICES = [
    ('FERMENTATION', 'Fermentation'),
    ('CONDITIONING', 'Conditioning'),
    ('BRIGHT', 'Bright'),
    ('PACKAGING', 'Packaging'),
    ('COMPLETED', 'Completed'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('production', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('lot_code', models.CharField(db_index=True, max_length=40, unique=True)),
                ('lot_type', models.CharField(choices=[('single', 'Single batch'), ('split', 'Split child'), ('blend', 'Blend')], default='single', max_length=10)),
                ('phase', models.CharField(choices=PHASE_CHOICES, default='FERMENTATION', max_length=20)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('COMPLETED', 'Completed')], default='ACTIVE', max_length=10)),
                ('total_volume', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('is_blend_result', models.BooleanField(default=False)),
                ('batch_count', models.PositiveIntegerField(default=1)),
                ('completion_reason', models.CharField(blank=True, choices=[('packaged', 'Packaged'), ('split', 'Split into child lots'), ('blended', 'Blended into another lot')], max_length=10)),
                ('split_at', models.DateTimeField(blank=True, null=True)),
                ('blended_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('parent_lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='child_lots', to='lots.lot')),
                ('superseded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='source_lots', to='lots.lot')),
                ('vessel', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='lots', to='production.vessel')),
            ],
            options={
                'db_table': 'lots',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'phase'], name='lots_status_phase_idx'),
                    models.Index(fields=['created_at'], name='lots_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LotBatch',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('volume_contribution', models.DecimalField(decimal_places=2, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lot_links', to='production.batch')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='batch_links', to='lots.lot')),
            ],
            options={
                'db_table': 'lot_batches',
                'ordering': ['created_at'],
                'unique_together': {('lot', 'batch')},
            },
        ),
        migrations.CreateModel(
            name='PackagingRun',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('lot_code', models.CharField(db_index=True, max_length=40)),
                ('package_type', models.CharField(choices=[('KEG_50', 'Keg 50 L'), ('KEG_30', 'Keg 30 L'), ('KEG_20', 'Keg 20 L'), ('BOTTLE_750', 'Bottle 0.75 L'), ('BOTTLE_500', 'Bottle 0.5 L'), ('BOTTLE_330', 'Bottle 0.33 L'), ('CAN_500', 'Can 0.5 L'), ('CAN_330', 'Can 0.33 L'), ('CUSTOM', 'Custom')], max_length=20)),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('volume_total', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('performed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('idempotency_key', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='packaging_runs', to='lots.lot')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='packaging_runs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'packaging_runs',
                'ordering': ['-performed_at'],
                'indexes': [models.Index(fields=['lot', 'performed_at'], name='runs_lot_performed_idx')],
            },
        ),
        migrations.CreateModel(
            name='LotTimelineEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event', models.CharField(choices=[('created', 'Created'), ('phase_changed', 'Phase changed'), ('completed', 'Completed'), ('split', 'Split'), ('blended', 'Blended'), ('superseded', 'Superseded by blend'), ('packaged', 'Packaged')], max_length=20)),
                ('previous_phase', models.CharField(blank=True, choices=PHASE_CHOICES, max_length=20)),
                ('new_phase', models.CharField(blank=True, choices=PHASE_CHOICES, max_length=20)),
                ('data', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='lot_timeline_entries', to=settings.AUTH_USER_MODEL)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='timeline', to='lots.lot')),
            ],
            options={
                'db_table': 'lot_timeline',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['lot', 'created_at'], name='timeline_lot_created_idx')],
            },
        ),
    ]
