"""
Trip distance and stop detection from recorded GPS points.

Points are (latitude, longitude, timestamp) tuples with aware datetimes.
"""
import math

EARTH_RADIUS_KM = 6371
MAX_PLAUSIBLE_SPEED_KMH = 180

STOP_MIN_DURATION_SECONDS = 3 * 60
STOP_MAX_RADIUS_METERS = 50
STOP_MIN_CONFIDENCE = 0.6


def validate_coordinates(latitude, longitude):
    """Return floats or raise ValueError when missing or out of range"""
    if latitude is None or longitude is None or latitude == '' or longitude == '':
        raise ValueError('Latitude and longitude are required')
    try:
        latitude = float(latitude)
        longitude = float(longitude)
    except (TypeError, ValueError):
        raise ValueError('Latitude and longitude must be numbers')
    if not -90 <= latitude <= 90:
        raise ValueError('Latitude must be between -90 and 90')
    if not -180 <= longitude <= 180:
        raise ValueError('Longitude must be between -180 and 180')
    return latitude, longitude


def haversine_km(lat1, lon1, lat2, lon2):
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def path_distance_km(points):
    """
    Sum of segment lengths in time order.

    Segments implying more than 180 km/h are GPS jumps and are skipped.
    """
    ordered = sorted(points, key=lambda point: point[2])
    total = 0.0
    for previous, current in zip(ordered, ordered[1:]):
        segment = haversine_km(previous[0], previous[1], current[0], current[1])
        if segment == 0:
            continue
        hours = (current[2] - previous[2]).total_seconds() / 3600
        if hours <= 0 or segment / hours > MAX_PLAUSIBLE_SPEED_KMH:
            continue
        total += segment
    return total


def _close_stop(stop_points):
    start = stop_points[0][2]
    end = stop_points[-1][2]
    duration = (end - start).total_seconds()
    if duration < STOP_MIN_DURATION_SECONDS:
        return None
    density = len(stop_points) / (duration / 60)
    duration_factor = min(1.0, duration / 600)
    confidence = min(1.0, density * 0.3 + duration_factor * 0.7)
    if confidence < STOP_MIN_CONFIDENCE:
        return None
    return {
        'latitude': sum(point[0] for point in stop_points) / len(stop_points),
        'longitude': sum(point[1] for point in stop_points) / len(stop_points),
        'start_time': start.isoformat(),
        'end_time': end.isoformat(),
        'duration_seconds': int(duration),
        'confidence': round(confidence, 2),
    }


def detect_stop_points(points):
    """Places where the vehicle stayed within 50 m for at least 3 minutes"""
    if len(points) < 3:
        return []
    ordered = sorted(points, key=lambda point: point[2])
    stops = []
    anchor = ordered[0]
    current = [anchor]
    for point in ordered[1:]:
        meters = haversine_km(anchor[0], anchor[1], point[0], point[1]) * 1000
        if meters <= STOP_MAX_RADIUS_METERS:
            current.append(point)
            continue
        stop = _close_stop(current)
        if stop:
            stops.append(stop)
        anchor = point
        current = [point]
    if len(current) > 1:
        stop = _close_stop(current)
        if stop:
            stops.append(stop)
    return stops


def format_duration(milliseconds):
    """1d 2h 3m, 2h 3m, 3m 4s or 4s"""
    seconds = int(milliseconds // 1000)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
