import asyncio
import logging
from telebot.async_telebot import AsyncTeleBot
from config import BOT_TOKEN, LOG_LEVEL, STORAGE_BACKEND

from db.memory import InMemoryStore
from db.mongo import MongoDB
from handlers import geo, matching, profile, settings
from keyboards.keyboards import MATCHES_BUTTON, PROFILE_BUTTON, RECOMMENDATIONS_BUTTON
from services.matching_service import MatchingService
from services.profile_service import ProfileService
from utils.state_service import StateService

# Логирование
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("main")


async def init_store():
    if STORAGE_BACKEND == "memory":
        logger.warning("Хранилище в памяти: данные пропадут после перезапуска")
        return InMemoryStore()
    store = MongoDB()
    await store.connect()
    return store


def register_handlers(bot, matching_service, profile_service, state_service):
    async def on_start(message):
        await profile.handle_start(bot, message, profile_service)

    async def on_about(message):
        await profile.handle_about(bot, message, profile_service)

    async def on_profile(message):
        await profile.handle_my_profile(bot, message, profile_service)

    async def on_find_pair(message):
        await matching.handle_find_pair(bot, message, matching_service, profile_service, state_service)

    async def on_matches(message):
        await matching.handle_matches(bot, message, matching_service, profile_service)

    async def on_send_message(message):
        await matching.handle_send_message(bot, message, matching_service, profile_service)

    async def on_search(message):
        await settings.handle_search_settings(bot, message, profile_service)

    async def on_location(message):
        await geo.handle_location(bot, message, profile_service)

    async def on_location_command(message):
        await geo.cmd_location(bot, message, profile_service)

    async def on_like(call):
        await matching.handle_like(bot, call, matching_service, profile_service, state_service)

    async def on_dislike(call):
        await matching.handle_dislike(bot, call, matching_service, profile_service, state_service)

    async def on_dismatch(call):
        await matching.handle_dismatch(bot, call, matching_service, profile_service)

    bot.register_message_handler(on_start, commands=['start'])
    bot.register_message_handler(on_about, commands=['about'])
    bot.register_message_handler(on_profile, commands=['profile'])
    bot.register_message_handler(on_profile, func=lambda m: m.text == PROFILE_BUTTON)
    bot.register_message_handler(on_find_pair, commands=['recommend'])
    bot.register_message_handler(on_find_pair, func=lambda m: m.text == RECOMMENDATIONS_BUTTON)
    bot.register_message_handler(on_matches, commands=['matches'])
    bot.register_message_handler(on_matches, func=lambda m: m.text == MATCHES_BUTTON)
    bot.register_message_handler(on_send_message, commands=['msg'])
    bot.register_message_handler(on_search, commands=['search'])
    bot.register_message_handler(on_location_command, commands=['location'])
    bot.register_message_handler(on_location, content_types=['location'])
    bot.register_callback_query_handler(on_like, func=lambda c: c.data.startswith('like_'))
    bot.register_callback_query_handler(on_dislike, func=lambda c: c.data.startswith('dislike_'))
    bot.register_callback_query_handler(on_dismatch, func=lambda c: c.data.startswith('dismatch_'))


async def main():
    logger.info("Запуск Telegram-бота...")
    # 1. Подключение к хранилищу
    store = await init_store()
    logger.info(f"Хранилище инициализировано ({STORAGE_BACKEND}).")

    # 2. Инициализация сервисов
    matching_service = MatchingService(store)
    profile_service = ProfileService(store)
    state_service = StateService()
    logger.info("Сервисы инициализированы.")

    # 3. Регистрация хендлеров
    bot = AsyncTeleBot(BOT_TOKEN)
    register_handlers(bot, matching_service, profile_service, state_service)
    logger.info(f"Зарегистрировано message handlers: {len(bot.message_handlers)}, "
                f"callback_query handlers: {len(bot.callback_query_handlers)}")

    logger.info("Бот запущен. Ожидание событий...")
    try:
        await bot.polling(non_stop=True)
    finally:
        if isinstance(store, MongoDB):
            store.close()


if __name__ == "__main__":
    asyncio.run(main())
