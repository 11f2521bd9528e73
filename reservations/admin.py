from django.contrib import admin
from django.utils.html import format_html

from core.cache import CacheInvalidator
from .models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'showtime', 'seat_number', 'created_at', 'payment_status']
    list_filter = ['is_paid', 'created_at', 'showtime__movie']
    search_fields = ['id', 'user__username', 'user__email', 'showtime__movie__title']
    readonly_fields = ['secret_code', 'created_at', 'is_paid']
    actions = ['export_as_csv']

    fieldsets = [
        ('Reservation', {
            'fields': ['user', 'showtime', 'seat_number', 'secret_code']
        }),
        ('Payment', {
            'fields': ['is_paid']
        }),
        ('Timestamps', {
            'fields': ['created_at']
        }),
    ]

    def payment_status(self, obj):
        if obj.is_paid:
            return format_html('<span class="badge bg-{}">{}</span>', 'success', 'PAID')
        return format_html('<span class="badge bg-{}">{}</span>', 'warning', 'HELD')
    payment_status.short_description = 'Status'

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        CacheInvalidator.invalidate_showtime_on_commit(obj.showtime_id)

    def delete_model(self, request, obj):
        showtime_id = obj.showtime_id
        super().delete_model(request, obj)
        CacheInvalidator.invalidate_showtime_on_commit(showtime_id)

    def delete_queryset(self, request, queryset):
        showtime_ids = set(queryset.values_list('showtime_id', flat=True))
        super().delete_queryset(request, queryset)
        for showtime_id in showtime_ids:
            CacheInvalidator.invalidate_showtime_on_commit(showtime_id)

    @admin.action(description="Export selected reservations to CSV")
    def export_as_csv(self, request, queryset):
        import csv
        from django.http import HttpResponse
        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="selected_reservations.csv"'
        writer = csv.writer(response)
        writer.writerow(['Reservation ID', 'User', 'Movie', 'Seat', 'Paid', 'Date'])

        for reservation in queryset.select_related('user', 'showtime__movie'):
            writer.writerow([
                reservation.id,
                reservation.user.username,
                reservation.showtime.movie.title,
                reservation.seat_number,
                reservation.is_paid,
                reservation.created_at.strftime('%Y-%m-%d %H:%M'),
            ])
        return response
