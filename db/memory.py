"""
memory.py — хранилище в памяти процесса с тем же контрактом, что и MongoDB.

Используется для локального запуска (STORAGE_BACKEND=memory) и в тестах.
Транзакции сериализуются asyncio.Lock, работают над копией данных и
применяются только при успешном выходе из блока.
"""
import asyncio
import copy
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional

from models.match import Match, Message, pair_key
from models.user import User
from utils.errors import AlreadyExistsError, StorageFailureError


class InMemoryStore:
    def __init__(self):
        self._users: Dict[str, Dict[str, Any]] = {}
        self._matches: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            users = copy.deepcopy(self._users)
            matches = copy.deepcopy(self._matches)
            yield MemoryTransaction(users, matches)
            self._users, self._matches = users, matches

    # Для тестов и отладки
    def user_document(self, user_id: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._users.get(user_id))

    def match_count(self) -> int:
        return len(self._matches)


class MemoryTransaction:
    def __init__(self, users: Dict[str, Dict[str, Any]], matches: Dict[str, Dict[str, Any]]):
        self._users = users
        self._matches = matches

    def _find_user(self, predicate) -> Optional[User]:
        for doc in self._users.values():
            if predicate(doc):
                return User.from_document(doc)
        return None

    async def find_user_by_id(self, user_id: str) -> Optional[User]:
        doc = self._users.get(user_id)
        return User.from_document(doc) if doc else None

    async def find_user_by_token(self, token: str) -> Optional[User]:
        return self._find_user(lambda doc: doc.get("token") == token)

    async def find_user_by_name(self, imaginary_name: str) -> Optional[User]:
        wanted = imaginary_name.casefold()
        return self._find_user(lambda doc: (doc.get("imaginary_name") or "").casefold() == wanted)

    async def find_user_by_telegram_id(self, tg_user_id: int) -> Optional[User]:
        return self._find_user(lambda doc: doc.get("tg_user_id") == tg_user_id)

    async def find_users_by_ids(self, user_ids: Iterable[str], exclude_fields: Iterable[str] = ()) -> List[User]:
        wanted = set(user_ids)
        return [
            User.from_document(_project(doc, exclude_fields))
            for key, doc in self._users.items() if key in wanted
        ]

    async def list_users(self, exclude_fields: Iterable[str] = ()) -> List[User]:
        return [User.from_document(_project(doc, exclude_fields)) for doc in self._users.values()]

    async def find_matches_involving(self, user_id: str) -> List[Match]:
        return [
            Match.from_document(doc) for doc in self._matches.values()
            if user_id in (doc["initiator"], doc["initiated_on"])
        ]

    async def find_match_by_id(self, match_id: str) -> Optional[Match]:
        doc = self._matches.get(match_id)
        return Match.from_document(doc) if doc else None

    async def find_match_for_pair(self, user_a: str, user_b: str) -> Optional[Match]:
        key = pair_key(user_a, user_b)
        for doc in self._matches.values():
            if doc["pair_key"] == key:
                return Match.from_document(doc)
        return None

    async def save_edges(self, user: User) -> None:
        doc = self._users.get(user.id)
        if doc is None:
            raise StorageFailureError(f"user {user.id} matched no document", operation="save_edges")
        doc.update(user.edges_document())

    async def insert_match(self, match: Match) -> Match:
        if match.id in self._matches or await self.find_match_for_pair(*match.participants):
            raise AlreadyExistsError("Match already exists")
        self._matches[match.id] = match.to_document()
        return match

    async def delete_match(self, match_id: str) -> bool:
        return self._matches.pop(match_id, None) is not None

    async def push_message(self, match_id: str, message: Message) -> Optional[Match]:
        doc = self._matches.get(match_id)
        if doc is None:
            return None
        doc["messages"].append(message.to_document())
        return Match.from_document(doc)

    async def insert_user(self, user: User) -> User:
        if user.id in self._users or await self.find_user_by_token(user.token):
            raise AlreadyExistsError("User already exists")
        self._users[user.id] = user.to_document()
        return user

    async def update_user_fields(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        doc = self._users.get(user_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(fields))
        return User.from_document(doc)


def _project(doc: Dict[str, Any], exclude_fields: Iterable[str]) -> Dict[str, Any]:
    excluded = set(exclude_fields)
    return {k: v for k, v in doc.items() if k not in excluded}
