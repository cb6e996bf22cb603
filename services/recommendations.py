"""
recommendations.py — конвейер подбора анкет.

Каждая стадия это отдельная функция (user, candidates, ...) -> candidates,
которая только сужает список. Порядок стадий фиксирован.
"""
import logging
from datetime import date
from typing import Callable, Iterable, List, Optional, Set

from models.user import User
from services.relationship_graph import RelationshipGraph
from utils.age import age_in_years
from utils.geo import distance_between_km

logger = logging.getLogger(__name__)


def exclude_self(user: User, candidates: List[User]) -> List[User]:
    return [c for c in candidates if c.id != user.id]


def exclude_signals(user: User, candidates: List[User], matched_ids: Set[str]) -> List[User]:
    """Убирает тех, кого пользователь уже лайкнул, отклонил или с кем в паре."""
    graph = RelationshipGraph([user], [(user.id, other) for other in matched_ids])
    excluded = graph.exclusion_set(user.id)
    return [c for c in candidates if c.id not in excluded]


def filter_distance(user: User, candidates: List[User]) -> List[User]:
    max_distance = user.search.max_distance
    if max_distance is None:
        return candidates
    if user.location is None:
        logger.warning(f"У пользователя {user.id} задан max_distance, но нет геолокации: фильтр расстояния пропущен")
        return candidates
    kept = []
    for candidate in candidates:
        distance = distance_between_km(user.location, candidate.location)
        if distance is not None and distance < max_distance:
            kept.append(candidate)
    return kept


def filter_age(user: User, candidates: List[User], today: date) -> List[User]:
    """Границы строгие: ровно age_min или age_max не проходит."""
    age_min, age_max = user.search.age_min, user.search.age_max
    if age_min is None and age_max is None:
        return candidates
    kept = []
    for candidate in candidates:
        if candidate.birthdate is None:
            continue
        age = age_in_years(candidate.birthdate, today)
        if age_min is not None and not age > age_min:
            continue
        if age_max is not None and not age < age_max:
            continue
        kept.append(candidate)
    return kept


def filter_attributes(user: User, candidates: List[User]) -> List[User]:
    gender, sexuality = user.search.gender_liked, user.search.sexuality_liked
    return [
        c for c in candidates
        if (gender is None or c.gender == gender) and (sexuality is None or c.sexuality == sexuality)
    ]


def order_by_distance(user: User, candidates: List[User]) -> List[User]:
    """Сначала ближайшие; без координат в конце, в исходном порядке."""
    if user.location is None:
        return candidates

    def key(candidate: User):
        distance = distance_between_km(user.location, candidate.location)
        return (distance is None, distance or 0.0)

    return sorted(candidates, key=key)


class RecommendationPipeline:
    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.today = today or date.today

    def run(self, user: User, population: Iterable[User], matched_ids: Set[str]) -> List[User]:
        candidates = exclude_self(user, list(population))
        candidates = exclude_signals(user, candidates, matched_ids)
        if user.search is None:
            return order_by_distance(user, candidates)

        candidates = filter_distance(user, candidates)
        candidates = filter_age(user, candidates, self.today())
        candidates = filter_attributes(user, candidates)
        logger.debug(f"Подбор для {user.id}: кандидатов {len(candidates)}")
        return order_by_distance(user, candidates)
