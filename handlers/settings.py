import logging

from handlers.matching import failure_text
from utils.validators import parse_age_range

logger = logging.getLogger(__name__)

SEARCH_USAGE = "Используйте: /search <мин-макс> <км> <пол> <ориентация>, например /search 25-35 10 Woman Straight"


def parse_search_command(text: str) -> dict:
    """'/search 25-35 10 Woman Straight' -> запись предпочтений."""
    parts = text.split()
    if len(parts) != 5:
        raise ValueError(SEARCH_USAGE)
    age_min, age_max = parse_age_range(parts[1])
    max_distance = float(parts[2])
    if max_distance <= 0:
        raise ValueError("Расстояние должно быть больше нуля")
    return {
        "age_min": age_min,
        "age_max": age_max,
        "max_distance": max_distance,
        "gender_liked": parts[3],
        "sexuality_liked": parts[4],
    }


async def handle_search_settings(bot, message, profile_service):
    user_id = message.from_user.id
    try:
        search = parse_search_command(message.text)
    except ValueError as e:
        await bot.reply_to(message, f"⚠️ {e}")
        return
    user = await profile_service.get_by_telegram_id(user_id)
    if not user:
        await bot.reply_to(message, "❌ Профиль не найден. Сначала выполните /start")
        return
    result = await profile_service.save_search_settings(user.token, search=search)
    if not result.ok:
        await bot.reply_to(message, failure_text(result))
        return
    logger.info(f"Пользователь {user_id} сохранил настройки поиска")
    await bot.reply_to(
        message,
        f"✅ Поиск: {search['age_min']}-{search['age_max']} лет, до {search['max_distance']:g} км, "
        f"{search['gender_liked']} / {search['sexuality_liked']}"
    )
