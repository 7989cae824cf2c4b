"""
Initial migration for Lotman models.
"""

from decimal import Decimal
import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Lotman models: Product, Variant, InventoryOrder, Batch, Movement."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('sku', models.CharField(blank=True, max_length=64, null=True, unique=True, verbose_name='Product SKU')),
                ('costing_method', models.CharField(choices=[('FIFO', 'First In, First Out'), ('LIFO', 'Last In, First Out'), ('WAC', 'Weighted Average Cost')], default='FIFO', help_text='Locked once any batch of the product has been consumed.', max_length=4, verbose_name='Costing method')),
                ('lead_time_days', models.PositiveIntegerField(blank=True, help_text='Empty = LOTMAN["DEFAULT_LEAD_TIME_DAYS"].', null=True, verbose_name='Lead time (days)')),
                ('reorder_buffer_days', models.PositiveIntegerField(blank=True, help_text='Empty = LOTMAN["DEFAULT_BUFFER_DAYS"].', null=True, verbose_name='Reorder buffer (days)')),
                ('min_order_qty', models.PositiveIntegerField(default=0, help_text='Applies to the sum of all variants. 0 = no minimum.', verbose_name='Minimum order quantity')),
                ('enable_stock_alerts', models.BooleanField(default=True, verbose_name='Stock alerts enabled')),
                ('status', models.CharField(choices=[('active', 'Active'), ('archived', 'Archived')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Variant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=64, unique=True, verbose_name='SKU')),
                ('name', models.CharField(blank=True, default='', max_length=200, verbose_name='Name')),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Unit price')),
                ('cost', models.DecimalField(decimal_places=4, default=Decimal('0'), help_text='Informative only. Valuation always comes from batches.', max_digits=12, verbose_name='Reference cost')),
                ('reorder_point', models.PositiveIntegerField(default=0, verbose_name='Reorder point')),
                ('reorder_qty', models.PositiveIntegerField(default=0, verbose_name='Reorder quantity')),
                ('lead_time_days', models.PositiveIntegerField(blank=True, help_text='Empty = use the product lead time.', null=True, verbose_name='Lead time (days)')),
                ('allow_backorder', models.BooleanField(default=False, verbose_name='Allow backorder')),
                ('committed', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Committed')),
                ('incoming', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Incoming')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='variants', to='lotman.product', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Variant',
                'verbose_name_plural': 'Variants',
                'ordering': ['product', 'id'],
            },
        ),
        migrations.CreateModel(
            name='InventoryOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference', models.CharField(max_length=100, unique=True, verbose_name='Reference')),
                ('kind', models.CharField(choices=[('sale', 'Sale'), ('purchase', 'Purchase'), ('adjustment', 'Adjustment'), ('damage', 'Damage'), ('expired', 'Expired'), ('return', 'Return')], max_length=20, verbose_name='Kind')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='completed', max_length=20, verbose_name='Status')),
                ('order_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Order date')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled at')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Inventory order',
                'verbose_name_plural': 'Inventory orders',
                'ordering': ['-order_date'],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.PositiveIntegerField(help_text='Insertion order within the variant. Breaks receipt date ties.', verbose_name='Sequence')),
                ('reference', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Lot code')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Supplier')),
                ('unit_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=12, verbose_name='Unit cost')),
                ('received_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Received')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Remaining')),
                ('quantity_consumed', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Consumed')),
                ('history', models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='Consumption history')),
                ('received_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Received at')),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Expiry date')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='lotman.inventoryorder', verbose_name='Purchase order')),
                ('variant', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='lotman.variant', verbose_name='Variant')),
            ],
            options={
                'verbose_name': 'Batch',
                'verbose_name_plural': 'Batches',
                'ordering': ['variant', 'received_at', 'sequence'],
                'indexes': [
                    models.Index(fields=['variant', 'received_at'], name='lotman_batc_variant_6b1f0e_idx'),
                    models.Index(fields=['expiry_date'], name='lotman_batc_expiry__3c2a9d_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='lotman_batch_quantity_non_negative'),
                    models.UniqueConstraint(fields=('variant', 'sequence'), name='lotman_unique_batch_sequence'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('in', 'Inbound'), ('out', 'Outbound'), ('adjust', 'Adjustment'), ('transfer', 'Transfer'), ('return', 'Return'), ('damage', 'Damage'), ('expired', 'Expired')], db_index=True, max_length=10, verbose_name='Kind')),
                ('quantity', models.DecimalField(decimal_places=3, help_text='Positive = in, negative = out', max_digits=12, verbose_name='Quantity')),
                ('previous_stock', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Previous stock')),
                ('new_stock', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='New stock')),
                ('reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Reference')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
                ('unit_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=12, verbose_name='Unit cost')),
                ('metadata', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.batch', verbose_name='Batch')),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.inventoryorder', verbose_name='Order')),
                ('reverses', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='reversals', to='lotman.movement', verbose_name='Reverses')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='User')),
                ('variant', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.variant', verbose_name='Variant')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['timestamp', 'id'],
                'indexes': [
                    models.Index(fields=['variant', 'timestamp'], name='lotman_move_variant_8d4e21_idx'),
                    models.Index(fields=['kind', 'timestamp'], name='lotman_move_kind_5a7c30_idx'),
                ],
            },
        ),
    ]
