from django.urls import path
from . import views

urlpatterns = [

    path('CreateReservation', views.create_reservation, name='create_reservation'),
    path('MyReservations', views.my_reservations, name='my_reservations'),
    path('CheckSeatAvailability', views.check_seat_availability, name='check_seat_availability'),
    path('Verify/<int:reservation_id>', views.verify_reservation, name='verify_reservation'),


    path('<int:showtime_id>/ReservedSeats', views.reserved_seats, name='reserved_seats'),
    path('<int:showtime_id>/AvailableSeats', views.available_seats, name='available_seats'),


    path('<int:reservation_id>/UpdateSeat', views.update_seat, name='update_seat'),
    path('<int:reservation_id>', views.reservation_detail, name='reservation_detail'),
]
