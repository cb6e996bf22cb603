"""
validators.py — набор функций для валидации пользовательских данных.
Используется в хендлерах и сервисах для проверки корректности ввода.
"""
from typing import Any, Dict, Iterable, Tuple

from utils.errors import ValidationError


def validate_age_range(min_age: int, max_age: int) -> bool:
    """Проверяет, что диапазон возраста корректен."""
    return 18 <= min_age < max_age <= 100


def parse_age_range(text: str) -> Tuple[int, int]:
    """Парсит строку вида '25-35' в кортеж (25, 35)."""
    parts = text.replace(' ', '').split('-')
    if len(parts) != 2:
        raise ValueError("Формат должен быть 'min-max'")
    min_age, max_age = map(int, parts)
    if not validate_age_range(min_age, max_age):
        raise ValueError("Возраст вне диапазона 18-100 или min >= max")
    return min_age, max_age


def require_fields(values: Dict[str, Any], fields: Iterable[str]):
    """Все перечисленные поля должны быть заполнены (не None и не пустая строка)."""
    for field in fields:
        value = values.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required field: {field}", field=field)


def validate_search(search: Dict[str, Any]):
    """Проверяет запись предпочтений поиска перед сохранением."""
    max_distance = search.get("max_distance")
    if max_distance is not None and (not isinstance(max_distance, (int, float)) or max_distance <= 0):
        raise ValidationError("max_distance must be a positive number", field="max_distance")
    age_min, age_max = search.get("age_min"), search.get("age_max")
    for field, value in (("age_min", age_min), ("age_max", age_max)):
        if value is not None and (not isinstance(value, int) or value < 0):
            raise ValidationError(f"{field} must be a non-negative integer", field=field)
    if age_min is not None and age_max is not None and age_min >= age_max:
        raise ValidationError("age_min must be lower than age_max", field="age_min")


def validate_location(location: Dict[str, Any]):
    require_fields(location, ["latitude", "longitude"])
    try:
        lat, lon = float(location["latitude"]), float(location["longitude"])
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numbers", field="location")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ValidationError("Coordinates out of range", field="location")
