"""
geo.py — утилиты для работы с координатами пользователей.
Используется фильтром расстояния в рекомендациях и при сохранении геолокации.
"""
from typing import Optional, Tuple
from geopy.distance import great_circle


def parse_coords(coord_str: str) -> Optional[Tuple[float, float]]:
    """Парсит строку 'долгота, широта' в кортеж (lat, lon)."""
    if not coord_str or not isinstance(coord_str, str):
        return None
    try:
        clean_str = coord_str.strip('[] ')
        parts = [p.strip() for p in clean_str.split(',')]
        if len(parts) == 2:
            lon, lat = map(float, parts)
            if -180 <= lon <= 180 and -90 <= lat <= 90:
                return (lat, lon)
    except (ValueError, TypeError, AttributeError):
        pass
    return None


def calc_distance_km(coords1: Tuple[float, float], coords2: Tuple[float, float]) -> float:
    """Расстояние по большому кругу между двумя точками (lat, lon) в км."""
    return great_circle(coords1, coords2).meters / 1000


def distance_between_km(location1, location2) -> Optional[float]:
    """Расстояние между двумя Location; None, если одна из точек неизвестна."""
    if location1 is None or location2 is None:
        return None
    return calc_distance_km(location1.coords, location2.coords)
