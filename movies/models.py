from django.db import models
from django.core.validators import MinValueValidator


class Category(models.Model):

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)

    def __str__(self):
        return self.name

    class Meta:
        verbose_name_plural = 'categories'
        ordering = ['name']


class Movie(models.Model):

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    poster = models.URLField(blank=True)

    duration_in_minutes = models.PositiveIntegerField(help_text="Duration in minutes")
    suitable_age = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    release_date = models.DateField()

    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='movies')

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.title} ({self.release_date.year})"

    def duration_formatted(self):

        hours = self.duration_in_minutes // 60
        minutes = self.duration_in_minutes % 60
        return f"{hours}h {minutes}m"

    class Meta:
        ordering = ['-release_date', 'title']


from .theater_models import Theater, Showtime  # noqa: E402,F401
