from django.contrib import admin
from django.db import transaction
from django.utils.html import format_html

from .models import Payment
from .reconciliation import PaymentReconciler


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'razorpay_order_id', 'reservation', 'user', 'amount', 'currency', 'created_at', 'payment_status']
    list_filter = ['status', 'currency', 'created_at']
    search_fields = ['razorpay_order_id', 'razorpay_payment_id', 'user__username', 'user__email']
    readonly_fields = ['razorpay_order_id', 'razorpay_payment_id', 'status', 'created_at', 'paid_at', 'refunded_at']
    actions = ['mark_refunded']

    fieldsets = [
        ('Payment Information', {
            'fields': ['reservation', 'user', 'amount', 'currency', 'status', 'failure_reason']
        }),
        ('Gateway', {
            'fields': ['razorpay_order_id', 'razorpay_payment_id']
        }),
        ('Timestamps', {
            'fields': ['created_at', 'paid_at', 'refunded_at']
        }),
    ]

    def payment_status(self, obj):
        colors = {
            Payment.STATUS_CREATED: 'secondary',
            Payment.STATUS_ATTEMPTED: 'warning',
            Payment.STATUS_SUCCEEDED: 'success',
            Payment.STATUS_FAILED: 'danger',
            Payment.STATUS_REFUNDED: 'info',
            Payment.STATUS_CANCELED: 'dark',
        }
        color = colors.get(obj.status, 'secondary')
        return format_html('<span class="badge bg-{}">{}</span>', color, obj.status.upper())
    payment_status.short_description = 'Status'

    @admin.action(description="Mark selected payments as refunded")
    def mark_refunded(self, request, queryset):
        updated = 0
        for payment_id in queryset.filter(status=Payment.STATUS_SUCCEEDED).values_list('pk', flat=True):
            with transaction.atomic():
                payment = Payment.objects.select_for_update().select_related('reservation').get(pk=payment_id)
                if PaymentReconciler.apply_status(payment, Payment.STATUS_REFUNDED):
                    updated += 1
        self.message_user(request, f"{updated} payments marked as refunded.")
