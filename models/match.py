"""
match.py — запись о взаимной симпатии (паре) и её переписка.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId


def pair_key(user_a: str, user_b: str) -> str:
    """Ключ неупорядоченной пары, на нём висит уникальный индекс."""
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


@dataclass
class Message:
    sender: str
    content: str
    date: datetime

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Message":
        return cls(sender=str(doc["sender"]), content=doc["content"], date=doc["date"])

    def to_document(self) -> Dict[str, Any]:
        return {"sender": self.sender, "content": self.content, "date": self.date}


@dataclass
class Match:
    id: str
    initiator: str
    initiated_on: str
    messages: List[Message] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def new(cls, initiator: str, initiated_on: str) -> "Match":
        return cls(
            id=str(ObjectId()),
            initiator=initiator,
            initiated_on=initiated_on,
            created_at=datetime.now(timezone.utc),
        )

    @property
    def participants(self) -> Tuple[str, str]:
        return (self.initiator, self.initiated_on)

    @property
    def pair_key(self) -> str:
        return pair_key(self.initiator, self.initiated_on)

    def involves(self, user_id: str) -> bool:
        return user_id in self.participants

    def other(self, user_id: str) -> str:
        return self.initiated_on if user_id == self.initiator else self.initiator

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Match":
        return cls(
            id=str(doc["_id"]),
            initiator=str(doc["initiator"]),
            initiated_on=str(doc["initiated_on"]),
            messages=[Message.from_document(m) for m in doc.get("messages") or []],
            created_at=doc.get("created_at"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "initiator": self.initiator,
            "initiated_on": self.initiated_on,
            "pair_key": self.pair_key,
            "messages": [m.to_document() for m in self.messages],
            "created_at": self.created_at,
        }

    def projection(self, users: Dict[str, Any]) -> Dict[str, Any]:
        """Пара с подставленными участниками (users: id -> dict проекции)."""
        return {
            "id": self.id,
            "initiator": users.get(self.initiator),
            "initiated_on": users.get(self.initiated_on),
            "messages": [m.to_document() for m in self.messages],
            "created_at": self.created_at,
        }
