import logging
import secrets
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from db.protocols import Store
from models.results import Found
from models.user import SENSITIVE_FIELDS, Location, SearchSettings, User, birthdate_document
from utils.age import to_date
from utils.errors import AlreadyExistsError, MatchmakingError, NotFoundError, StorageFailureError, ValidationError
from utils.validators import require_fields, validate_location, validate_search

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16  # 32 hex-символа


async def project_with_partners(tx, users: Iterable[User], depth: int = 1) -> List[Dict[str, Any]]:
    """
    Публичные проекции пользователей с подставленными партнёрами
    (my_relationships -> список проекций), depth уровней вглубь.
    """
    users = list(users)
    if depth <= 0:
        return [user.public() for user in users]
    partner_ids = {pid for user in users for pid in user.my_relationships}
    partners = await tx.find_users_by_ids(partner_ids, SENSITIVE_FIELDS) if partner_ids else []
    projected = {p["id"]: p for p in await project_with_partners(tx, partners, depth - 1)}
    result = []
    for user in users:
        doc = user.public()
        doc["my_relationships"] = [projected[pid] for pid in user.my_relationships if pid in projected]
        result.append(doc)
    return result


class ProfileService:
    def __init__(self, store: Store):
        self.store = store

    async def get_by_telegram_id(self, tg_user_id: int) -> Optional[User]:
        async with self.store.transaction() as tx:
            return await tx.find_user_by_telegram_id(tg_user_id)

    async def create_profile(self, name: str, imaginary_name: str, tg_user_id: Optional[int] = None,
                             gender: Optional[str] = None, sexuality: Optional[str] = None,
                             birthdate: Optional[date] = None):
        """Минимальный профиль без пароля; возвращает Found(token) или Failure."""
        try:
            require_fields({"name": name, "imaginary_name": imaginary_name}, ["name", "imaginary_name"])
            async with self.store.transaction() as tx:
                if await tx.find_user_by_name(imaginary_name):
                    raise AlreadyExistsError("Imaginary name already exists")
                user = User(
                    id=str(ObjectId()),
                    token=secrets.token_hex(TOKEN_BYTES),
                    name=name,
                    imaginary_name=imaginary_name,
                    gender=gender,
                    sexuality=sexuality,
                    birthdate=birthdate,
                    tg_user_id=tg_user_id,
                )
                await tx.insert_user(user)
            logger.info(f"Создан профиль {user.id} ({imaginary_name})")
            return Found(user.token)
        except MatchmakingError as e:
            logger.warning(f"Создание профиля отклонено - {e.message}")
            return e.to_failure()

    async def find_by_imaginary_name(self, imaginary_name: str):
        try:
            require_fields({"imaginary_name": imaginary_name}, ["imaginary_name"])
            async with self.store.transaction() as tx:
                user = await tx.find_user_by_name(imaginary_name)
            if not user:
                raise NotFoundError("User", imaginary_name)
            return Found(user.public())
        except MatchmakingError as e:
            return e.to_failure()

    async def display_profile(self, user_token: str):
        """Профиль с теми, кто лайкнул, и партнёрами, каждый со своими партнёрами."""
        try:
            require_fields({"user_token": user_token}, ["user_token"])
            async with self.store.transaction() as tx:
                user = await tx.find_user_by_token(user_token)
                if not user:
                    raise NotFoundError("User")
                admirers = await tx.find_users_by_ids(user.who_likes_me, SENSITIVE_FIELDS)
                partners = await tx.find_users_by_ids(user.my_relationships, SENSITIVE_FIELDS)
                profile = user.public(exclude=("password", "my_likes", "my_dislikes"))
                profile["who_likes_me"] = await project_with_partners(tx, admirers)
                profile["my_relationships"] = await project_with_partners(tx, partners)
            return Found(profile)
        except MatchmakingError as e:
            return e.to_failure()

    async def update_profile(self, user_token: str, birthdate=None, gender: Optional[str] = None,
                             sexuality: Optional[str] = None, occupation: Optional[str] = None,
                             description: Optional[str] = None):
        """
        Обновляет только переданные поля анкеты. birthdate: date или ISO-строка.
        Возвращает Found(проекция) или Failure.
        """
        try:
            require_fields({"user_token": user_token}, ["user_token"])
            supplied = {
                "gender": gender,
                "sexuality": sexuality,
                "occupation": occupation,
                "description": description,
            }
            fields = {name: value for name, value in supplied.items() if value}
            if birthdate:
                try:
                    parsed = to_date(birthdate)
                except (TypeError, ValueError):
                    raise ValidationError("birthdate must be an ISO date", field="birthdate")
                if parsed > date.today():
                    raise ValidationError("birthdate is in the future", field="birthdate")
                fields["birthdate"] = birthdate_document(parsed)
            if not fields:
                raise ValidationError("Nothing to update", field="profile")
            async with self.store.transaction() as tx:
                user = await tx.find_user_by_token(user_token)
                if not user:
                    raise NotFoundError("User")
                updated = await tx.update_user_fields(user.id, fields)
                if updated is None:
                    raise StorageFailureError(f"user {user.id} matched no document", operation="update_profile")
            logger.info(f"Пользователь {user.id} обновил анкету: {sorted(fields)}")
            return Found(updated.public())
        except MatchmakingError as e:
            logger.warning(f"Обновление анкеты отклонено - {e.message}")
            return e.to_failure()

    async def save_search_settings(self, user_token: str, search: Optional[Dict[str, Any]] = None,
                                   location: Optional[Dict[str, Any]] = None):
        try:
            require_fields({"user_token": user_token}, ["user_token"])
            fields = {}
            if search:
                validate_search(search)
                fields["search"] = SearchSettings.from_document(search).to_document()
            if location:
                validate_location(location)
                fields["location"] = Location.from_document(location).to_document()
            if not fields:
                raise ValidationError("Nothing to update", field="search")
            async with self.store.transaction() as tx:
                user = await tx.find_user_by_token(user_token)
                if not user:
                    raise NotFoundError("User")
                updated = await tx.update_user_fields(user.id, fields)
                if updated is None:
                    raise NotFoundError("User")
            logger.info(f"Пользователь {user.id} обновил настройки поиска: {sorted(fields)}")
            return Found(updated.public())
        except MatchmakingError as e:
            logger.warning(f"Настройки поиска отклонены - {e.message}")
            return e.to_failure()
