# Generated manually
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('locations', '0001_initial'),
        ('vendors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Asset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('asset_id', models.CharField(max_length=50, unique=True)),
                ('barcode', models.CharField(max_length=100, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('type', models.CharField(choices=[('FURNITURE', 'Furniture'), ('EQUIPMENT', 'Equipment'), ('ELECTRONICS', 'Electronics'), ('KITCHEN', 'Kitchen'), ('IT', 'IT'), ('OTHER', 'Other')], max_length=20)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('LIKE_NEW', 'Like New'), ('IN_TRANSIT', 'In Transit'), ('MAINTENANCE', 'Maintenance'), ('DAMAGED', 'Damaged'), ('CRITICAL', 'Critical'), ('DISPOSED', 'Disposed')], default='ACTIVE', max_length=20)),
                ('floor_number', models.CharField(blank=True, max_length=20)),
                ('room_number', models.CharField(blank=True, max_length=20)),
                ('purchase_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('purchase_date', models.DateField(blank=True, null=True)),
                ('image_url', models.URLField(blank=True, max_length=500)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('last_moved_at', models.DateTimeField(blank=True, null=True)),
                ('disposed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets', to='locations.location')),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets', to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assets', to='vendors.vendor')),
            ],
            options={
                'db_table': 'assets',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='assets_status_6f2e1d_idx'),
                    models.Index(fields=['type'], name='assets_type_0b9c3a_idx'),
                    models.Index(fields=['floor_number', 'room_number'], name='assets_floor_n_4d7e2b_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssetHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('REGISTERED', 'Registered'), ('UPDATED', 'Updated'), ('MOVED', 'Moved'), ('STATUS_CHANGED', 'Status Changed'), ('DISPOSED', 'Disposed'), ('DOCUMENT_ADDED', 'Document Added'), ('DOCUMENT_DELETED', 'Document Deleted')], max_length=30)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='assets.asset')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_history', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'asset_history',
                'ordering': ['-created_at', '-id'],
                'verbose_name_plural': 'asset history',
            },
        ),
        migrations.CreateModel(
            name='AssetMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_floor', models.CharField(blank=True, max_length=20)),
                ('from_room', models.CharField(blank=True, max_length=20)),
                ('to_floor', models.CharField(max_length=20)),
                ('to_room', models.CharField(max_length=20)),
                ('reason', models.TextField(blank=True)),
                ('moved_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='movements', to='assets.asset')),
                ('moved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_movements', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'asset_movements',
                'ordering': ['-moved_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='AssetDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(blank=True, upload_to='asset_documents/%Y/%m/')),
                ('file_url', models.URLField(blank=True, max_length=1000)),
                ('file_name', models.CharField(max_length=255)),
                ('file_type', models.CharField(blank=True, max_length=100)),
                ('file_size', models.PositiveIntegerField(default=0)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='assets.asset')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='asset_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'asset_documents',
                'ordering': ['-uploaded_at', '-id'],
            },
        ),
    ]
