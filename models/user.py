"""
user.py — профиль пользователя в том виде, в каком его видит ядро знакомств.

Документ MongoDB коллекции `users` <-> dataclass User.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from utils.age import to_date

logger = logging.getLogger(__name__)

# Поля, которые никогда не уходят клиенту
SENSITIVE_FIELDS = ("password", "my_likes", "my_dislikes", "who_likes_me")
# Проекция для выборки всей популяции в рекомендациях
POPULATION_EXCLUDED_FIELDS = SENSITIVE_FIELDS + ("imaginary_name",)
EDGE_FIELDS = ("my_likes", "who_likes_me", "my_dislikes")


@dataclass
class Location:
    latitude: float
    longitude: float
    city: Optional[str] = None

    @property
    def coords(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> Optional["Location"]:
        if not doc or doc.get("latitude") is None or doc.get("longitude") is None:
            return None
        return cls(float(doc["latitude"]), float(doc["longitude"]), doc.get("city"))

    def to_document(self) -> Dict[str, Any]:
        doc = {"latitude": self.latitude, "longitude": self.longitude}
        if self.city:
            doc["city"] = self.city
        return doc


@dataclass
class SearchSettings:
    """Предпочтения поиска. Незаполненное поле не фильтрует."""
    max_distance: Optional[float] = None
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    gender_liked: Optional[str] = None
    sexuality_liked: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> Optional["SearchSettings"]:
        if not doc:
            return None
        return cls(
            max_distance=doc.get("max_distance"),
            age_min=doc.get("age_min"),
            age_max=doc.get("age_max"),
            gender_liked=doc.get("gender_liked"),
            sexuality_liked=doc.get("sexuality_liked"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "max_distance": self.max_distance,
            "age_min": self.age_min,
            "age_max": self.age_max,
            "gender_liked": self.gender_liked,
            "sexuality_liked": self.sexuality_liked,
        }


@dataclass
class User:
    id: str
    token: str
    name: str = ""
    imaginary_name: Optional[str] = None
    gender: Optional[str] = None
    sexuality: Optional[str] = None
    birthdate: Optional[date] = None
    location: Optional[Location] = None
    search: Optional[SearchSettings] = None
    pictures: List[str] = field(default_factory=list)
    description: Optional[str] = None
    occupation: Optional[str] = None
    tg_user_id: Optional[int] = None
    my_likes: Set[str] = field(default_factory=set)
    who_likes_me: Set[str] = field(default_factory=set)
    my_dislikes: Set[str] = field(default_factory=set)
    my_relationships: List[str] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        return cls(
            id=str(doc["_id"]),
            token=doc.get("token", ""),
            name=doc.get("name", ""),
            imaginary_name=doc.get("imaginary_name"),
            gender=doc.get("gender"),
            sexuality=doc.get("sexuality"),
            birthdate=_stored_birthdate(doc),
            location=Location.from_document(doc.get("location")),
            search=SearchSettings.from_document(doc.get("search")),
            pictures=list(doc.get("pictures") or []),
            description=doc.get("description"),
            occupation=doc.get("occupation"),
            tg_user_id=doc.get("tg_user_id"),
            my_likes=_ids(doc.get("my_likes")),
            who_likes_me=_ids(doc.get("who_likes_me")),
            my_dislikes=_ids(doc.get("my_dislikes")),
            my_relationships=[str(i) for i in doc.get("my_relationships") or []],
        )

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "_id": self.id,
            "token": self.token,
            "name": self.name,
            "imaginary_name": self.imaginary_name,
            "gender": self.gender,
            "sexuality": self.sexuality,
            "birthdate": birthdate_document(self.birthdate),
            "location": self.location.to_document() if self.location else None,
            "search": self.search.to_document() if self.search else None,
            "pictures": list(self.pictures),
            "description": self.description,
            "occupation": self.occupation,
            "tg_user_id": self.tg_user_id,
            "my_relationships": list(self.my_relationships),
        }
        doc.update(self.edges_document())
        return doc

    def edges_document(self) -> Dict[str, List[str]]:
        """Три множества рёбер в детерминированном порядке, для $set."""
        return {name: sorted(getattr(self, name)) for name in EDGE_FIELDS}

    def public(self, exclude: Iterable[str] = SENSITIVE_FIELDS) -> Dict[str, Any]:
        """Проекция для клиента без чувствительных полей."""
        doc = self.to_document()
        for name in exclude:
            doc.pop(name, None)
        doc["id"] = doc.pop("_id")
        if self.birthdate:
            doc["birthdate"] = self.birthdate.isoformat()
        return doc

    def card(self) -> Dict[str, Any]:
        """Короткая карточка участника пары."""
        return {"id": self.id, "name": self.name, "pictures": list(self.pictures), "token": self.token}


def birthdate_document(value: Optional[date]) -> Optional[datetime]:
    # BSON не умеет хранить date, только datetime
    return datetime.combine(value, time.min) if value else None


def _stored_birthdate(doc: Dict[str, Any]) -> Optional[date]:
    try:
        return to_date(doc.get("birthdate"))
    except (TypeError, ValueError):
        logger.warning(f"Некорректная дата рождения у пользователя {doc.get('_id')}: {doc.get('birthdate')!r}")
        return None


def _ids(values: Optional[Iterable[Any]]) -> Set[str]:
    return {str(v) for v in values or ()}
