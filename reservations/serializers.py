def reservation_summary(reservation):

    showtime = reservation.showtime
    return {
        'id': reservation.id,
        'seatNumber': reservation.seat_number,
        'showtimeId': showtime.id,
        'movieTitle': showtime.movie.title,
        'showDateTime': showtime.start_time,
        'theaterName': showtime.theater.name,
        'isPaid': reservation.is_paid,
        'createdAt': reservation.created_at,
    }


def reservation_detail(reservation, include_secret=True):
    """Full reservation view; the secret code is only shown to its owner or a verifier."""
    showtime = reservation.showtime
    movie = showtime.movie
    theater = showtime.theater

    data = {
        'id': reservation.id,
        'seatNumber': reservation.seat_number,
        'createdAt': reservation.created_at,
        'isPaid': reservation.is_paid,
        'showtimeId': showtime.id,
        'price': showtime.price,
        'showDateTime': showtime.start_time,
        'movieTitle': movie.title,
        'moviePoster': movie.poster,
        'durationInMinutes': movie.duration_in_minutes,
        'theaterName': theater.name,
        'totalSeats': theater.total_seats,
    }
    if include_secret:
        data['secretCode'] = reservation.secret_code
    return data
