def category_data(category):
    if category is None:
        return None
    return {
        'id': category.id,
        'name': category.name,
        'description': category.description,
    }


def movie_summary(movie):

    return {
        'id': movie.id,
        'title': movie.title,
        'poster': movie.poster,
        'durationInMinutes': movie.duration_in_minutes,
        'suitableAge': movie.suitable_age,
        'releaseDate': movie.release_date,
        'category': category_data(movie.category),
    }


def movie_detail(movie, showtimes=()):

    data = movie_summary(movie)
    data['description'] = movie.description
    data['duration'] = movie.duration_formatted()
    data['createdAt'] = movie.created_at
    data['upcomingShowtimes'] = [showtime_summary(s) for s in showtimes]
    return data


def showtime_summary(showtime):

    return {
        'id': showtime.id,
        'startTime': showtime.start_time,
        'price': showtime.price,
        'movieId': showtime.movie_id,
        'movieTitle': showtime.movie.title,
        'theaterId': showtime.theater_id,
        'theaterName': showtime.theater.name,
        'totalSeats': showtime.theater.total_seats,
    }


def showtime_detail(showtime, availability):
    """Showtime with its movie and current seat availability."""
    data = showtime_summary(showtime)
    data['isUpcoming'] = showtime.is_upcoming()
    data['movie'] = movie_summary(showtime.movie)
    data['availability'] = availability
    return data
