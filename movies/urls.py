from django.urls import path
from . import views

urlpatterns = [
    path('Showtime', views.showtime_list, name='showtime_list'),
    path('Showtime/Upcoming', views.upcoming_showtimes, name='upcoming_showtimes'),
    path('Showtime/<int:showtime_id>', views.showtime_detail, name='showtime_detail'),
    path('Showtime/<int:showtime_id>/Availability', views.showtime_availability, name='showtime_availability'),
    path('Showtime/<int:showtime_id>/ReservedSeats', views.showtime_reserved_seats, name='showtime_reserved_seats'),

    path('Movie', views.movie_list, name='movie_list'),
    path('Movie/<int:movie_id>', views.movie_detail, name='movie_detail'),
]
