# Generated manually for the brewery production app

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Recipe',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('style', models.CharField(blank=True, max_length=100)),
                ('target_og', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('target_fg', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('batch_size', models.DecimalField(decimal_places=2, help_text='Reference volume in litres the ingredient amounts are written for', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('yeast_strain', models.CharField(blank=True, max_length=100)),
                ('ingredients', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'recipes',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Vessel',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=20, unique=True)),
                ('name', models.CharField(max_length=100)),
                ('vessel_type', models.CharField(choices=[('fermenter', 'Fermenter'), ('conditioning', 'Conditioning tank'), ('bright', 'Bright tank'), ('unitank', 'Unitank')], default='fermenter', max_length=20)),
                ('capacity', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('status', models.CharField(choices=[('available', 'Available'), ('in_use', 'In use'), ('needs_cip', 'Needs CIP'), ('maintenance', 'Maintenance')], default='available', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'vessels',
                'ordering': ['code'],
                'indexes': [models.Index(fields=['status'], name='vessels_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('batch_number', models.CharField(db_index=True, max_length=20, unique=True)),
                ('planned_volume', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('target_og', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('target_fg', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('original_gravity', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('final_gravity', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('current_gravity', models.DecimalField(blank=True, decimal_places=4, max_digits=6, null=True)),
                ('status', models.CharField(choices=[('planned', 'Planned'), ('brewing', 'Brewing'), ('fermenting', 'Fermenting'), ('conditioning', 'Conditioning'), ('ready', 'Ready'), ('packaging', 'Packaging'), ('completed', 'Completed')], default='planned', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('brew_date', models.DateTimeField(blank=True, null=True)),
                ('fermentation_started_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='batches_created', to=settings.AUTH_USER_MODEL)),
                ('recipe', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='production.recipe')),
            ],
            options={
                'db_table': 'batches',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'created_at'], name='batches_status_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='GravityReading',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('gravity', models.DecimalField(decimal_places=4, max_digits=6)),
                ('temperature', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ('reading_type', models.CharField(choices=[('original', 'Original gravity'), ('routine', 'Routine'), ('final', 'Final gravity')], default='routine', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('recorded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='gravity_readings', to='production.batch')),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='gravity_readings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'gravity_readings',
                'ordering': ['-recorded_at'],
                'indexes': [models.Index(fields=['batch', 'recorded_at'], name='readings_batch_recorded_idx')],
            },
        ),
    ]
