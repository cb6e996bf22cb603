"""
match_engine.py — создание и удаление пар, добавление сообщений.

Методы получают уже открытую транзакцию: проверка и запись идут в ней же,
поэтому любое исключение откатывает всё действие целиком.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from models.match import Match, Message
from models.user import User
from services.relationship_graph import RelationshipGraph
from utils.errors import AlreadyExistsError, InvalidStateError, NotFoundError, StorageFailureError, ValidationError

logger = logging.getLogger(__name__)


class MatchFormationEngine:
    async def form_match(self, tx, initiator: User, initiated_on: User) -> Match:
        """Вызывается только на взаимной симпатии."""
        if await tx.find_match_for_pair(initiator.id, initiated_on.id):
            raise AlreadyExistsError("Match already exists")
        match = await tx.insert_match(Match.new(initiator.id, initiated_on.id))
        logger.info(f"Пара {match.id} создана: {initiator.id} <-> {initiated_on.id}")
        return match

    async def dismatch(self, tx, graph: RelationshipGraph, actor: User, other: User, match_id: str):
        match = await tx.find_match_by_id(match_id)
        if not match:
            raise NotFoundError("Match", match_id)
        if set(match.participants) != {actor.id, other.id}:
            raise InvalidStateError("Match does not belong to these users")

        graph.add_match(actor.id, other.id)
        graph.unlink(actor.id, other.id)
        for user_id in sorted(graph.dirty):
            await tx.save_edges(graph.user(user_id))
        if not await tx.delete_match(match_id):
            raise StorageFailureError(f"match {match_id} was not deleted", operation="delete_match")
        logger.info(f"Пара {match_id} удалена пользователем {actor.id}")

    async def append_message(self, tx, match_id: str, sender: User, content: str,
                             timestamp: Optional[datetime] = None) -> Match:
        if not content or not content.strip():
            raise ValidationError("Message content is empty", field="content")
        match = await tx.find_match_by_id(match_id)
        if not match:
            raise NotFoundError("Match", match_id)
        if not match.involves(sender.id):
            raise InvalidStateError("Sender is not part of this match")

        message = Message(sender=sender.id, content=content, date=timestamp or datetime.now(timezone.utc))
        saved = await tx.push_message(match_id, message)
        if saved is None:
            # пару удалили между чтением и записью
            raise NotFoundError("Match", match_id)
        logger.info(f"Сообщение от {sender.id} добавлено в пару {match_id}")
        return saved
