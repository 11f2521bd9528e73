import logging

from django.http import HttpResponse

from core.decorators import api_login_required, api_view
from core.pagination import DEFAULT_PAGE_SIZE
from core.responses import api_response, parse_int, parse_json_body
from .services import ReservationService

logger = logging.getLogger(__name__)


@api_view(['POST'])
@api_login_required
def create_reservation(request):

    data = parse_json_body(request)
    showtime_id = parse_int(data.get('showtimeId'), 'showtimeId')
    seat_number = parse_int(data.get('seatNumber'), 'seatNumber')

    reservation = ReservationService.create_reservation(request.user, showtime_id, seat_number)
    return api_response(reservation, message='Reservation created successfully', status=201)


@api_view(['GET'])
@api_login_required
def my_reservations(request):

    page_number = parse_int(request.GET.get('pageNumber'), 'pageNumber', required=False, default=1)
    page_size = parse_int(request.GET.get('pageSize'), 'pageSize', required=False, default=DEFAULT_PAGE_SIZE)

    result = ReservationService.get_user_reservations(request.user, page_number, page_size)
    return api_response(result, message='Reservations retrieved successfully')


@api_view(['GET', 'HEAD', 'DELETE'])
def reservation_detail(request, reservation_id):

    if request.method == 'HEAD':
        exists = ReservationService.reservation_exists(reservation_id)
        return HttpResponse(status=200 if exists else 204)

    if request.method == 'DELETE':
        return cancel_reservation(request, reservation_id)

    user = request.user if request.user.is_authenticated else None
    reservation = ReservationService.get_reservation(reservation_id, user=user)
    return api_response(reservation, message='Reservation retrieved successfully')


@api_login_required
def cancel_reservation(request, reservation_id):

    ReservationService.cancel_reservation(reservation_id, request.user)
    return api_response(True, message='Reservation cancelled successfully')


@api_view(['POST'])
def verify_reservation(request, reservation_id):

    secret_code = request.GET.get('secretCode', '')
    is_valid, reservation = ReservationService.verify_reservation(reservation_id, secret_code)

    if not is_valid:
        return api_response({'isValid': False}, message='Invalid reservation or secret code')
    return api_response({'isValid': True, 'reservation': reservation}, message='Reservation is valid')


@api_view(['GET'])
def check_seat_availability(request):

    showtime_id = parse_int(request.GET.get('showtimeId'), 'showtimeId')
    seat_number = parse_int(request.GET.get('seatNumber'), 'seatNumber')

    result = ReservationService.check_seat_availability(showtime_id, seat_number)
    return api_response(result, message=result['message'])


@api_view(['GET'])
def reserved_seats(request, showtime_id):

    seats = ReservationService.get_reserved_seats(showtime_id)
    return api_response(seats, message='Reserved seats retrieved successfully')


@api_view(['GET'])
def available_seats(request, showtime_id):

    seats = ReservationService.get_available_seats(showtime_id)
    return api_response(seats, message='Available seats retrieved successfully')


@api_view(['PUT'])
@api_login_required
def update_seat(request, reservation_id):

    new_seat_number = parse_int(request.GET.get('newSeatNumber'), 'newSeatNumber')

    ReservationService.update_seat(reservation_id, new_seat_number, request.user)
    return api_response(True, message='Seat updated successfully')
