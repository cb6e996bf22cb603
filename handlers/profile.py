import logging
from datetime import date, datetime

from telebot.formatting import escape_markdown

from keyboards.keyboards import main_menu_keyboard
from handlers.matching import failure_text
from utils.age import age_in_years
from utils.errors import ErrorKind

logger = logging.getLogger(__name__)

ABOUT_USAGE = "Используйте: /about <ДД.ММ.ГГГГ> <пол> <ориентация>, например /about 15.06.1994 Woman Straight"


async def handle_start(bot, message, profile_service):
    user_id = message.from_user.id
    existing = await profile_service.get_by_telegram_id(user_id)
    if existing:
        await bot.send_message(user_id, "🎭 С возвращением! Выберите действие из меню.", reply_markup=main_menu_keyboard)
        return
    name = message.from_user.first_name or "Новый пользователь"
    imaginary_name = message.from_user.username or f"user{user_id}"
    result = await profile_service.create_profile(name=name, imaginary_name=imaginary_name, tg_user_id=user_id)
    if not result.ok and result.kind == ErrorKind.ALREADY_EXISTS:
        # ник уже занят другим профилем
        result = await profile_service.create_profile(
            name=name, imaginary_name=f"{imaginary_name}_{user_id}", tg_user_id=user_id
        )
    if not result.ok:
        if result.kind == ErrorKind.ALREADY_EXISTS:
            await bot.send_message(user_id, f"🎭 Имя {imaginary_name} уже занято, профиль не создан")
        else:
            await bot.send_message(user_id, failure_text(result))
        return
    logger.info(f"Создан новый профиль для {user_id}")
    await bot.send_message(
        user_id,
        "🏰 *Добро пожаловать!*\n\n"
        "Расскажите о себе: /about 15.06.1994 Woman Straight\n"
        "Настройте поиск: /search 25-35 10 Woman Straight\n"
        "и отправьте геолокацию кнопкой в меню.",
        reply_markup=main_menu_keyboard,
        parse_mode="Markdown"
    )


def parse_about_command(text: str, today: date = None) -> dict:
    """'/about 15.06.1994 Woman Straight' -> поля анкеты."""
    parts = text.split()
    if len(parts) != 4:
        raise ValueError(ABOUT_USAGE)
    try:
        birthdate = datetime.strptime(parts[1], "%d.%m.%Y").date()
    except ValueError:
        raise ValueError("Дата рождения должна быть в формате ДД.ММ.ГГГГ")
    if not 18 <= age_in_years(birthdate, today or date.today()) <= 100:
        raise ValueError("Возраст должен быть от 18 до 100 лет")
    return {"birthdate": birthdate, "gender": parts[2], "sexuality": parts[3]}


async def handle_about(bot, message, profile_service):
    user_id = message.from_user.id
    try:
        fields = parse_about_command(message.text)
    except ValueError as e:
        await bot.reply_to(message, f"⚠️ {e}")
        return
    user = await profile_service.get_by_telegram_id(user_id)
    if not user:
        await bot.reply_to(message, "❌ Профиль не найден. Сначала выполните /start")
        return
    result = await profile_service.update_profile(user.token, **fields)
    if not result.ok:
        await bot.reply_to(message, failure_text(result))
        return
    await bot.reply_to(message, f"✅ Анкета обновлена: {fields['gender']} / {fields['sexuality']}")


def format_profile(profile: dict) -> str:
    search = profile.get("search") or {}
    partners = ", ".join(p.get("name", "") for p in profile.get("my_relationships", [])) or "нет"
    lines = [
        f"👤 *{escape_markdown(profile.get('name') or '')}*",
        f"🚻 Пол: {escape_markdown(profile.get('gender') or 'не указан')}",
        f"🎂 Дата рождения: {escape_markdown(profile.get('birthdate') or 'не указана')}",
        f"💌 Вас лайкнули: {len(profile.get('who_likes_me', []))}",
        f"🤝 Партнёры: {escape_markdown(partners)}",
    ]
    if search:
        lines.append(escape_markdown(
            f"🔎 Поиск: {search.get('age_min')}-{search.get('age_max')} лет, "
            f"до {search.get('max_distance')} км, {search.get('gender_liked')}, {search.get('sexuality_liked')}"
        ))
    return "\n".join(lines)


async def handle_my_profile(bot, message, profile_service):
    user_id = message.from_user.id
    logger.info(f"Пользователь {user_id} запросил свой профиль.")
    user = await profile_service.get_by_telegram_id(user_id)
    if not user:
        await bot.send_message(user_id, "❌ Профиль не найден. Сначала выполните /start")
        return
    result = await profile_service.display_profile(user.token)
    if not result.ok:
        await bot.send_message(user_id, failure_text(result))
        return
    await bot.send_message(user_id, format_profile(result.data), parse_mode="MarkdownV2")
