"""
protocols.py — контракт хранилища, которым пользуются сервисы.

Все чтения и записи одного действия идут через один Transaction: либо
применяется всё, либо ничего (исключение внутри блока откатывает изменения).
Реализации: db/mongo.py (MongoDB) и db/memory.py (in-memory).
"""
from typing import AsyncContextManager, Any, Dict, Iterable, List, Optional, Protocol

from models.match import Match, Message
from models.user import User


class Transaction(Protocol):
    async def find_user_by_id(self, user_id: str) -> Optional[User]: ...
    async def find_user_by_token(self, token: str) -> Optional[User]: ...
    async def find_user_by_name(self, imaginary_name: str) -> Optional[User]: ...
    async def find_user_by_telegram_id(self, tg_user_id: int) -> Optional[User]: ...
    async def find_users_by_ids(
        self, user_ids: Iterable[str], exclude_fields: Iterable[str] = (),
    ) -> List[User]: ...
    async def list_users(self, exclude_fields: Iterable[str] = ()) -> List[User]: ...
    async def find_matches_involving(self, user_id: str) -> List[Match]: ...
    async def find_match_by_id(self, match_id: str) -> Optional[Match]: ...
    async def find_match_for_pair(self, user_a: str, user_b: str) -> Optional[Match]: ...
    async def save_edges(self, user: User) -> None: ...
    async def insert_match(self, match: Match) -> Match: ...
    async def delete_match(self, match_id: str) -> bool: ...
    async def push_message(self, match_id: str, message: Message) -> Optional[Match]: ...
    async def insert_user(self, user: User) -> User: ...
    async def update_user_fields(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]: ...


class Store(Protocol):
    def transaction(self) -> AsyncContextManager[Transaction]: ...
