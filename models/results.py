"""
results.py — результаты публичных операций ядра.

Каждая операция возвращает либо успешный результат, либо Failure; поле ok
позволяет вызывающему слою не разбирать типы.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from utils.errors import ErrorKind


@dataclass
class Matched:
    """Взаимная симпатия превратилась в пару."""
    initiator: str
    initiated_on: str
    match: Optional[Dict[str, Any]] = None
    ok = True


@dataclass
class LikeRecorded:
    actor: str
    target: str
    ok = True


@dataclass
class Done:
    message: str = ""
    ok = True


@dataclass
class Recommendations:
    candidates: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    ok = True


@dataclass
class MessageSaved:
    match: Dict[str, Any]
    ok = True


@dataclass
class Found:
    """Обёртка для read-операций (профиль, список пар, поиск по имени)."""
    data: Any
    ok = True


@dataclass
class Failure:
    kind: ErrorKind
    message: str
    ok = False
