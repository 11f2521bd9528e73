from django.contrib import admin
from django.utils.html import format_html

from .models import Category, Movie
from .theater_models import Theater, Showtime


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'movie_count']
    search_fields = ['name']

    def movie_count(self, obj):
        return obj.movies.count()
    movie_count.short_description = 'Movies'


@admin.register(Movie)
class MovieAdmin(admin.ModelAdmin):
    list_display = ['title', 'release_date', 'category', 'duration_formatted', 'suitable_age', 'poster_preview']

    list_filter = ['category', 'release_date']

    search_fields = ['title', 'description']

    fieldsets = [
        ('Basic Info', {
            'fields': ['title', 'description', 'poster']
        }),
        ('Details', {
            'fields': ['release_date', 'duration_in_minutes', 'suitable_age', 'category']
        }),
    ]

    def duration_formatted(self, obj):
        return obj.duration_formatted()
    duration_formatted.short_description = 'Duration'  # Sets the column header name

    def poster_preview(self, obj):
        if obj.poster:
            return format_html(
                '<img src="{}" style="width: 50px; height: 75px; object-fit: cover; border-radius: 4px;" />',
                obj.poster
            )
        return format_html('<div style="width: 50px; height: 75px; background: #f0f0f0; font-size: 10px; color: #999;">{}</div>', 'No Poster')
    poster_preview.short_description = 'Poster'


@admin.register(Theater)
class TheaterAdmin(admin.ModelAdmin):
    list_display = ['name', 'total_seats', 'created_at']
    search_fields = ['name']


@admin.register(Showtime)
class ShowtimeAdmin(admin.ModelAdmin):
    list_display = ['movie', 'theater', 'start_time', 'price', 'reserved_count']
    list_filter = ['start_time', 'theater']

    search_fields = ['movie__title', 'theater__name']

    date_hierarchy = 'start_time'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('movie', 'theater')

    def reserved_count(self, obj):
        return f"{obj.reservations.count()} / {obj.theater.total_seats}"
    reserved_count.short_description = 'Reserved'
