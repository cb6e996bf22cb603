"""
age.py — вычисление возраста в полных годах.
"""
from datetime import date, datetime
from typing import Optional, Union


def to_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Приводит datetime/ISO-строку к date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def age_in_years(birthdate: Union[date, datetime], on: Union[date, datetime]) -> int:
    """Количество полных лет между birthdate и on."""
    birthdate = to_date(birthdate)
    on = to_date(on)
    years = on.year - birthdate.year
    if (on.month, on.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years
