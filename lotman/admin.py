"""
Lotman Admin.

- Product / Variant: editable catalogue settings (costing method, lead
  times, MOQ, reorder point); stock figures are read-only
- Batch: read-only lot traceability with consumption history
- Movement: read-only audit trail
- InventoryOrder: read-only with a "cancel" action that reverses the
  order's ledger effects
"""

import logging

from django import forms
from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from lotman.exceptions import StockError
from lotman.models import Batch, InventoryOrder, Movement, OrderStatus, Product, Variant

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Rows only change through the stock service."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# PRODUCT / VARIANT
# =========================================================================

class ProductAdminForm(forms.ModelForm):
    class Meta:
        model = Product
        fields = '__all__'

    def clean_costing_method(self):
        method = self.cleaned_data['costing_method']
        instance = self.instance
        if instance.pk:
            stored = Product.objects.filter(pk=instance.pk).values_list('costing_method', flat=True).first()
            if stored != method and instance.has_consumption():
                raise forms.ValidationError(StockError('COSTING_METHOD_LOCKED').message)
        return method


class VariantInline(admin.TabularInline):
    model = Variant
    extra = 0
    fields = ['sku', 'name', 'price', 'cost', 'reorder_point', 'lead_time_days',
              'allow_backorder', 'status', 'stock_display']
    readonly_fields = ['stock_display']

    @admin.display(description=_('On hand'))
    def stock_display(self, obj):
        return obj.stock_on_hand if obj.pk else '-'


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    form = ProductAdminForm
    list_display = ['name', 'sku', 'costing_method', 'lead_time_days',
                    'min_order_qty', 'enable_stock_alerts', 'status']
    list_filter = ['costing_method', 'status', 'enable_stock_alerts']
    search_fields = ['name', 'sku']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [VariantInline]


@admin.register(Variant)
class VariantAdmin(admin.ModelAdmin):
    list_display = ['sku', 'product', 'stock_display', 'committed', 'incoming',
                    'reorder_point', 'status']
    list_filter = ['status', 'product__costing_method', 'allow_backorder']
    search_fields = ['sku', 'name', 'product__name']
    readonly_fields = ['committed', 'incoming', 'created_at', 'updated_at']
    list_select_related = ['product']

    @admin.display(description=_('On hand'))
    def stock_display(self, obj):
        return obj.stock_on_hand


# =========================================================================
# BATCH (read-only)
# =========================================================================

@admin.register(Batch)
class BatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Batch admin: lot traceability. Drained batches stay listed."""

    list_display = ['__str__', 'variant', 'received_at', 'received_quantity',
                    'quantity', 'unit_cost', 'expiry_date', 'is_expired_display']
    list_filter = ['expiry_date', 'received_at']
    search_fields = ['reference', 'supplier', 'variant__sku']
    readonly_fields = ['variant', 'sequence', 'reference', 'supplier', 'unit_cost',
                       'received_quantity', 'quantity', 'quantity_consumed',
                       'history', 'received_at', 'expiry_date', 'order', 'created_at']
    date_hierarchy = 'received_at'

    @admin.display(description=_('Expired?'), boolean=True)
    def is_expired_display(self, obj):
        return obj.is_expired


# =========================================================================
# MOVEMENT (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin: immutable ledger."""

    list_display = ['timestamp', 'variant', 'kind', 'quantity', 'previous_stock',
                    'new_stock', 'order', 'reason', 'user']
    list_filter = ['kind', 'timestamp']
    search_fields = ['variant__sku', 'reference', 'reason']
    readonly_fields = ['variant', 'kind', 'quantity', 'previous_stock', 'new_stock',
                       'order', 'reference', 'reason', 'notes', 'batch', 'unit_cost',
                       'reverses', 'user', 'metadata', 'timestamp']
    date_hierarchy = 'timestamp'
    list_select_related = ['variant', 'order', 'user']


# =========================================================================
# INVENTORY ORDER (read-only with cancel action)
# =========================================================================

@admin.register(InventoryOrder)
class InventoryOrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['reference', 'kind', 'status', 'order_date', 'cancelled_at']
    list_filter = ['kind', 'status']
    search_fields = ['reference']
    readonly_fields = ['reference', 'kind', 'status', 'order_date', 'cancelled_at',
                       'metadata', 'created_at']
    actions = ['cancel_orders']

    @admin.action(description=_('Cancel selected orders'))
    def cancel_orders(self, request, queryset):
        from lotman import stock

        count = 0
        for order in queryset.exclude(status=OrderStatus.CANCELLED):
            try:
                stock.cancel_order(order.reference, user=request.user)
                count += 1
            except StockError as exc:
                logger.warning("cancel_orders: failed to cancel %s: %s", order.reference, exc)
                self.message_user(request, f"{order.reference}: {exc.message}", level=messages.ERROR)

        self.message_user(request, _('{count} order(s) cancelled.').format(count=count))
