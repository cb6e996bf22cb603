import logging

from handlers.matching import failure_text
from utils.geo import parse_coords

logger = logging.getLogger(__name__)


async def _save_location(bot, message, profile_service, latitude, longitude):
    user = await profile_service.get_by_telegram_id(message.from_user.id)
    if not user:
        await bot.reply_to(message, "❌ Профиль не найден. Сначала выполните /start")
        return
    result = await profile_service.save_search_settings(
        user.token, location={"latitude": latitude, "longitude": longitude}
    )
    if result.ok:
        await bot.reply_to(message, f"📍 Геолокация сохранена: {latitude:.4f}, {longitude:.4f}")
    else:
        await bot.reply_to(message, failure_text(result))


# Сообщение с геолокацией из Telegram
async def handle_location(bot, message, profile_service):
    await _save_location(bot, message, profile_service, message.location.latitude, message.location.longitude)


async def cmd_location(bot, message, profile_service):
    """/location долгота, широта"""
    parts = message.text.split(maxsplit=1)
    coords = parse_coords(parts[1]) if len(parts) > 1 else None
    if not coords:
        await bot.reply_to(message, "Используйте: /location долгота, широта")
        return
    latitude, longitude = coords
    await _save_location(bot, message, profile_service, latitude, longitude)
