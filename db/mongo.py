import logging
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError

from config import MONGODB_DATABASE, MONGODB_HOST, MONGODB_PORT, MONGODB_REPLICA_SET
from models.match import Match, Message, pair_key
from models.user import User
from utils.errors import AlreadyExistsError, StorageFailureError

logger = logging.getLogger(__name__)


class MongoDB:
    """
    Асинхронный слой работы с MongoDB.

    - connect: подключение к базе и создание индексов.
    - get_collection: получить коллекцию по имени.
    - transaction: все операции одного действия в одной транзакции сессии.

    Коллекции: users (профили и рёбра симпатий), matches (пары и переписка).
    Транзакции требуют replica set (MONGODB_REPLICA_SET).
    """
    def __init__(self):
        self.client = None
        self.db = None

    async def connect(self):
        options = {}
        if MONGODB_REPLICA_SET:
            options['replicaset'] = MONGODB_REPLICA_SET
        try:
            self.client = AsyncIOMotorClient(
                host=MONGODB_HOST,
                port=MONGODB_PORT,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                socketTimeoutMS=30000,
                **options
            )
            await self.client.admin.command('ping')
            self.db = self.client[MONGODB_DATABASE]
            await self.ensure_indexes()
            logger.info(f'MongoDB: подключено к {MONGODB_HOST}:{MONGODB_PORT}/{MONGODB_DATABASE}')
        except ServerSelectionTimeoutError:
            logger.critical('MongoDB: сервер недоступен (таймаут выбора сервера)')
            raise
        except ConnectionFailure as e:
            logger.critical(f'MongoDB: ошибка подключения - {str(e)}')
            raise

    async def ensure_indexes(self):
        users = self.get_collection('users')
        matches = self.get_collection('matches')
        await users.create_index('token', unique=True)
        await users.create_index('tg_user_id', sparse=True)
        # Одна пара на неупорядоченную пару пользователей
        await matches.create_index('pair_key', unique=True)
        await matches.create_index('initiator')
        await matches.create_index('initiated_on')

    def get_collection(self, name):
        if self.db is None:
            raise RuntimeError('MongoDB не инициализирован')
        return self.db[name]

    @asynccontextmanager
    async def transaction(self):
        if self.client is None:
            raise RuntimeError('MongoDB не инициализирован')
        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    yield MongoTransaction(self.db, session)
        except PyMongoError as e:
            logger.error(f'MongoDB: транзакция прервана - {str(e)}')
            raise StorageFailureError(str(e), operation='transaction') from e

    def close(self):
        if self.client is not None:
            self.client.close()


class MongoTransaction:
    def __init__(self, db, session):
        self.db = db
        self.session = session

    async def _find_user(self, query, projection=None) -> Optional[User]:
        doc = await self.db.users.find_one(query, projection, session=self.session)
        return User.from_document(doc) if doc else None

    async def find_user_by_id(self, user_id: str) -> Optional[User]:
        return await self._find_user({'_id': user_id})

    async def find_user_by_token(self, token: str) -> Optional[User]:
        return await self._find_user({'token': token})

    async def find_user_by_name(self, imaginary_name: str) -> Optional[User]:
        # Точное совпадение без учёта регистра, не подстрока
        pattern = f'^{re.escape(imaginary_name)}$'
        return await self._find_user({'imaginary_name': {'$regex': pattern, '$options': 'i'}})

    async def find_user_by_telegram_id(self, tg_user_id: int) -> Optional[User]:
        return await self._find_user({'tg_user_id': tg_user_id})

    async def find_users_by_ids(self, user_ids: Iterable[str], exclude_fields: Iterable[str] = ()) -> List[User]:
        cursor = self.db.users.find(
            {'_id': {'$in': list(user_ids)}}, _projection(exclude_fields), session=self.session
        ).sort('_id', 1)
        return [User.from_document(doc) for doc in await cursor.to_list(None)]

    async def list_users(self, exclude_fields: Iterable[str] = ()) -> List[User]:
        cursor = self.db.users.find({}, _projection(exclude_fields), session=self.session).sort('_id', 1)
        return [User.from_document(doc) for doc in await cursor.to_list(None)]

    async def find_matches_involving(self, user_id: str) -> List[Match]:
        cursor = self.db.matches.find(
            {'$or': [{'initiator': user_id}, {'initiated_on': user_id}]}, session=self.session
        ).sort('created_at', 1)
        return [Match.from_document(doc) for doc in await cursor.to_list(None)]

    async def find_match_by_id(self, match_id: str) -> Optional[Match]:
        doc = await self.db.matches.find_one({'_id': match_id}, session=self.session)
        return Match.from_document(doc) if doc else None

    async def find_match_for_pair(self, user_a: str, user_b: str) -> Optional[Match]:
        doc = await self.db.matches.find_one({'pair_key': pair_key(user_a, user_b)}, session=self.session)
        return Match.from_document(doc) if doc else None

    async def save_edges(self, user: User) -> None:
        result = await self.db.users.update_one(
            {'_id': user.id}, {'$set': user.edges_document()}, session=self.session
        )
        if result.matched_count != 1:
            raise StorageFailureError(f'user {user.id} matched {result.matched_count} documents', operation='save_edges')

    async def insert_match(self, match: Match) -> Match:
        try:
            await self.db.matches.insert_one(match.to_document(), session=self.session)
        except DuplicateKeyError:
            raise AlreadyExistsError('Match already exists')
        return match

    async def delete_match(self, match_id: str) -> bool:
        result = await self.db.matches.delete_one({'_id': match_id}, session=self.session)
        return result.deleted_count == 1

    async def push_message(self, match_id: str, message: Message) -> Optional[Match]:
        doc = await self.db.matches.find_one_and_update(
            {'_id': match_id},
            {'$push': {'messages': message.to_document()}},
            return_document=ReturnDocument.AFTER,
            session=self.session
        )
        return Match.from_document(doc) if doc else None

    async def insert_user(self, user: User) -> User:
        try:
            await self.db.users.insert_one(user.to_document(), session=self.session)
        except DuplicateKeyError:
            raise AlreadyExistsError('User already exists')
        return user

    async def update_user_fields(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        doc = await self.db.users.find_one_and_update(
            {'_id': user_id},
            {'$set': fields},
            return_document=ReturnDocument.AFTER,
            session=self.session
        )
        return User.from_document(doc) if doc else None


def _projection(exclude_fields: Iterable[str]) -> Optional[Dict[str, int]]:
    projection = {name: 0 for name in exclude_fields}
    return projection or None
