"""
relationship_graph.py — направленные симпатии/антипатии между пользователями.

my_likes одного пользователя и who_likes_me другого это две стороны одного
ребра, поэтому менять их можно только здесь, всегда парой.
"""
import logging
from typing import Dict, Iterable, Set, Tuple, Union

from models.results import LikeRecorded, Matched
from models.user import User
from utils.errors import AlreadyExistsError, NotFoundError, SelfReferenceError

logger = logging.getLogger(__name__)


class RelationshipGraph:
    def __init__(self, users: Iterable[User] = (), matched_pairs: Iterable[Tuple[str, str]] = ()):
        self._users: Dict[str, User] = {}
        self._matched: Dict[str, Set[str]] = {}
        # id пользователей, у которых поменялись множества рёбер
        self.dirty: Set[str] = set()
        for user in users:
            self.add_user(user)
        for user_a, user_b in matched_pairs:
            self.add_match(user_a, user_b)

    def add_user(self, user: User):
        self._users[user.id] = user

    def add_match(self, user_a: str, user_b: str):
        self._matched.setdefault(user_a, set()).add(user_b)
        self._matched.setdefault(user_b, set()).add(user_a)

    def remove_match(self, user_a: str, user_b: str):
        self._matched.get(user_a, set()).discard(user_b)
        self._matched.get(user_b, set()).discard(user_a)

    def user(self, user_id: str) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise NotFoundError("User", user_id)

    def _pair(self, actor_id: str, target_id: str, action: str) -> Tuple[User, User]:
        if actor_id == target_id:
            raise SelfReferenceError(action)
        return self.user(actor_id), self.user(target_id)

    def is_matched(self, user_a: str, user_b: str) -> bool:
        return user_b in self._matched.get(user_a, ())

    def matched_with(self, user_id: str) -> Set[str]:
        return set(self._matched.get(user_id, ()))

    def _discard(self, owner: User, field: str, value: str):
        values = getattr(owner, field)
        if value in values:
            values.discard(value)
            self.dirty.add(owner.id)

    def _add(self, owner: User, field: str, value: str):
        values = getattr(owner, field)
        if value not in values:
            values.add(value)
            self.dirty.add(owner.id)

    def _drop_like(self, liker: User, liked: User):
        self._discard(liker, "my_likes", liked.id)
        self._discard(liked, "who_likes_me", liker.id)

    def like(self, actor_id: str, target_id: str) -> Union[Matched, LikeRecorded]:
        """
        Симпатия actor -> target. Если target уже лайкнул actor, оба ребра
        снимаются и возвращается Matched; иначе ребро добавляется (идемпотентно).
        Собственная антипатия actor к target при этом снимается.
        """
        actor, target = self._pair(actor_id, target_id, "like")
        if self.is_matched(actor_id, target_id):
            raise AlreadyExistsError("Match already exists")

        self._discard(actor, "my_dislikes", target_id)
        if actor_id in target.my_likes:
            self._drop_like(target, actor)
            self._drop_like(actor, target)
            self.add_match(actor_id, target_id)
            logger.info(f"Взаимная симпатия: {actor_id} и {target_id}")
            return Matched(initiator=actor_id, initiated_on=target_id)

        self._add(actor, "my_likes", target_id)
        self._add(target, "who_likes_me", actor_id)
        return LikeRecorded(actor=actor_id, target=target_id)

    def dislike(self, actor_id: str, target_id: str):
        """Антипатия actor -> target; заодно отзывает собственную симпатию actor."""
        actor, target = self._pair(actor_id, target_id, "dislike")
        self._add(actor, "my_dislikes", target_id)
        self._drop_like(actor, target)

    def unlink(self, user_a: str, user_b: str):
        """Снимает пару и все следы симпатий между двумя пользователями."""
        first, second = self._pair(user_a, user_b, "dismatch")
        self._drop_like(first, second)
        self._drop_like(second, first)
        self.remove_match(user_a, user_b)

    def exclusion_set(self, user_id: str) -> Set[str]:
        user = self.user(user_id)
        return {user_id} | user.my_likes | user.my_dislikes | self.matched_with(user_id)
