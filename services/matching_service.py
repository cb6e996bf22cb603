import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from db.protocols import Store
from models.results import Done, Found, Matched, MessageSaved, Recommendations
from models.user import POPULATION_EXCLUDED_FIELDS, SENSITIVE_FIELDS, User
from services.match_engine import MatchFormationEngine
from services.profile_service import project_with_partners
from services.recommendations import RecommendationPipeline
from services.relationship_graph import RelationshipGraph
from utils.errors import ErrorKind, MatchmakingError, NotFoundError
from utils.validators import require_fields

logger = logging.getLogger(__name__)


class MatchingService:
    """
    Точка входа для вызывающего слоя (бот, HTTP): лайк, дизлайк, расставание,
    рекомендации, сообщения. Каждое действие идёт в одной транзакции хранилища;
    ошибки возвращаются как Failure, исключения наружу не выходят.
    """
    def __init__(self, store: Store, engine: Optional[MatchFormationEngine] = None,
                 pipeline: Optional[RecommendationPipeline] = None):
        self.store = store
        self.engine = engine or MatchFormationEngine()
        self.pipeline = pipeline or RecommendationPipeline()

    @staticmethod
    async def _user_by_token(tx, token: str, label: str = "User") -> User:
        user = await tx.find_user_by_token(token)
        if not user:
            raise NotFoundError(label)
        return user

    @staticmethod
    def _fail(action: str, error: MatchmakingError):
        if error.kind == ErrorKind.STORAGE_FAILURE:
            logger.error(f"{action}: ошибка хранилища - {error.message}")
        else:
            logger.warning(f"{action}: отклонено - {error.message}")
        return error.to_failure()

    @staticmethod
    async def _save_dirty(tx, graph: RelationshipGraph):
        for user_id in sorted(graph.dirty):
            await tx.save_edges(graph.user(user_id))

    async def record_like(self, actor_token: str, target_token: str):
        """Matched(с проекцией пары) | LikeRecorded | Failure."""
        try:
            require_fields({"user_token": actor_token, "liked_user_token": target_token},
                           ["user_token", "liked_user_token"])
            async with self.store.transaction() as tx:
                actor = await self._user_by_token(tx, actor_token)
                target = await self._user_by_token(tx, target_token, "Liked user")
                existing = await tx.find_match_for_pair(actor.id, target.id)
                graph = RelationshipGraph(
                    [actor, target], [existing.participants] if existing else []
                )
                outcome = graph.like(actor.id, target.id)
                await self._save_dirty(tx, graph)
                if isinstance(outcome, Matched):
                    match = await self.engine.form_match(tx, actor, target)
                    cards = {actor.id: actor.card(), target.id: target.card()}
                    outcome = replace(outcome, match=match.projection(cards))
                else:
                    logger.info(f"Пользователь {actor.id} лайкнул {target.id}")
            return outcome
        except MatchmakingError as e:
            return self._fail("Лайк", e)

    async def record_dislike(self, actor_token: str, target_token: str):
        try:
            require_fields({"user_token": actor_token, "disliked_user_token": target_token},
                           ["user_token", "disliked_user_token"])
            async with self.store.transaction() as tx:
                actor = await self._user_by_token(tx, actor_token)
                target = await self._user_by_token(tx, target_token, "Disliked user")
                graph = RelationshipGraph([actor, target])
                graph.dislike(actor.id, target.id)
                await self._save_dirty(tx, graph)
            logger.info(f"Пользователь {actor.id} дизлайкнул {target.id}")
            return Done("Dislike done")
        except MatchmakingError as e:
            return self._fail("Дизлайк", e)

    async def dismatch(self, actor_token: str, other_token: str, match_id: str):
        try:
            require_fields({"user_token": actor_token, "dismatched_user_token": other_token, "match_id": match_id},
                           ["user_token", "dismatched_user_token", "match_id"])
            async with self.store.transaction() as tx:
                actor = await self._user_by_token(tx, actor_token)
                other = await self._user_by_token(tx, other_token, "Dismatched user")
                graph = RelationshipGraph([actor, other])
                await self.engine.dismatch(tx, graph, actor, other, match_id)
            return Done("Dismatch done")
        except MatchmakingError as e:
            return self._fail("Расставание", e)

    async def compute_recommendations(self, user_token: str):
        try:
            require_fields({"user_token": user_token}, ["user_token"])
            async with self.store.transaction() as tx:
                user = await self._user_by_token(tx, user_token)
                population = await tx.list_users(POPULATION_EXCLUDED_FIELDS)
                matches = await tx.find_matches_involving(user.id)
                matched_ids = {m.other(user.id) for m in matches}
                candidates = self.pipeline.run(user, population, matched_ids)
                projected = await project_with_partners(tx, candidates)
            for doc in projected:
                doc.pop("imaginary_name", None)
            return Recommendations(candidates=projected, total=len(projected))
        except MatchmakingError as e:
            return self._fail("Рекомендации", e)

    async def append_match_message(self, match_id: str, sender_token: str, content: str,
                                   timestamp: Optional[datetime] = None):
        try:
            require_fields({"match_id": match_id, "sender": sender_token}, ["match_id", "sender"])
            async with self.store.transaction() as tx:
                sender = await self._user_by_token(tx, sender_token)
                match = await self.engine.append_message(tx, match_id, sender, content, timestamp)
                participants = await tx.find_users_by_ids(match.participants, SENSITIVE_FIELDS)
            cards = {u.id: u.card() for u in participants}
            return MessageSaved(match.projection(cards))
        except MatchmakingError as e:
            return self._fail("Сообщение", e)

    async def list_matches(self, user_token: str):
        """Все пары пользователя; участники с подставленными партнёрами."""
        try:
            require_fields({"user_token": user_token}, ["user_token"])
            async with self.store.transaction() as tx:
                user = await self._user_by_token(tx, user_token)
                matches = await tx.find_matches_involving(user.id)
                ids = {uid for m in matches for uid in m.participants}
                users = await tx.find_users_by_ids(ids, SENSITIVE_FIELDS) if ids else []
                projected = {doc["id"]: doc for doc in await project_with_partners(tx, users)}
            return Found([m.projection(projected) for m in matches])
        except MatchmakingError as e:
            return self._fail("Список пар", e)
