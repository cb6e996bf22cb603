import logging
from datetime import datetime, timezone

from telebot.formatting import escape_markdown

from keyboards.keyboards import candidate_keyboard, match_keyboard
from models.results import Matched
from utils.errors import ErrorKind

logger = logging.getLogger(__name__)

FAILURE_TEXTS = {
    ErrorKind.NOT_FOUND: "🔍 Не найдено: {message}",
    ErrorKind.SELF_REFERENCE: "🪞 Нельзя выбрать самого себя",
    ErrorKind.ALREADY_EXISTS: "💞 Вы уже в паре",
    ErrorKind.INVALID_STATE: "⚠️ Действие недоступно: {message}",
    ErrorKind.VALIDATION_ERROR: "⚠️ Проверьте ввод: {message}",
    ErrorKind.STORAGE_FAILURE: "❌ Ошибка сохранения, попробуйте позже",
}


def failure_text(failure) -> str:
    return FAILURE_TEXTS[failure.kind].format(message=failure.message)


def format_candidate(candidate: dict) -> str:
    lines = [f"👤 *{escape_markdown(candidate.get('name') or 'Без имени')}*"]
    if candidate.get("gender"):
        lines.append(f"🚻 {escape_markdown(candidate['gender'])}")
    if candidate.get("birthdate"):
        lines.append(f"🎂 {escape_markdown(candidate['birthdate'])}")
    location = candidate.get("location") or {}
    if location.get("city"):
        lines.append(f"🏙️ {escape_markdown(location['city'])}")
    if candidate.get("description"):
        lines.append(escape_markdown(candidate["description"]))
    return "\n".join(lines)


async def _resolve_token(bot, chat_id, tg_user_id, profile_service):
    user = await profile_service.get_by_telegram_id(tg_user_id)
    if not user:
        await bot.send_message(chat_id, "❌ Профиль не найден. Сначала выполните /start")
        return None
    return user.token


# Показ текущей анкеты из результатов подбора
async def show_candidate(bot, user_id, state_service):
    candidate = state_service.current_candidate(user_id)
    if candidate is None:
        await bot.send_message(user_id, "🏰 Все анкеты просмотрены!")
        state_service.clear_search_results(user_id)
        return
    await bot.send_message(
        user_id,
        format_candidate(candidate),
        reply_markup=candidate_keyboard(candidate["token"]),
        parse_mode="MarkdownV2"
    )


async def handle_find_pair(bot, message, matching_service, profile_service, state_service):
    user_id = message.from_user.id
    logger.info(f"Пользователь {user_id} начал поиск пары.")
    token = await _resolve_token(bot, message.chat.id, user_id, profile_service)
    if not token:
        return
    result = await matching_service.compute_recommendations(token)
    if not result.ok:
        await bot.send_message(message.chat.id, failure_text(result))
        return
    await bot.send_message(message.chat.id, f"🔮 Найдено анкет: {result.total}")
    state_service.set_search_results(user_id, result.candidates)
    await show_candidate(bot, user_id, state_service)


# Callback-обработчик like
async def handle_like(bot, call, matching_service, profile_service, state_service):
    user_id = call.from_user.id
    target_token = call.data.split('_', 1)[1]
    token = await _resolve_token(bot, user_id, user_id, profile_service)
    if not token:
        await bot.answer_callback_query(call.id)
        return
    result = await matching_service.record_like(token, target_token)
    if not result.ok:
        await bot.answer_callback_query(call.id, failure_text(result))
    elif isinstance(result, Matched):
        await bot.answer_callback_query(call.id, "💞 Это взаимно!")
        await bot.send_message(
            user_id,
            "💞 У вас новая пара! Напишите первым: /msg <id пары> <текст>",
            reply_markup=match_keyboard(result.match["id"])
        )
    else:
        await bot.answer_callback_query(call.id, "💌 Симпатия отправлена!")
    state_service.advance(user_id)
    await show_candidate(bot, user_id, state_service)


# Callback-обработчик dislike
async def handle_dislike(bot, call, matching_service, profile_service, state_service):
    user_id = call.from_user.id
    target_token = call.data.split('_', 1)[1]
    token = await _resolve_token(bot, user_id, user_id, profile_service)
    if not token:
        await bot.answer_callback_query(call.id)
        return
    result = await matching_service.record_dislike(token, target_token)
    await bot.answer_callback_query(call.id, "👋 Больше не покажем" if result.ok else failure_text(result))
    state_service.advance(user_id)
    await show_candidate(bot, user_id, state_service)


async def handle_matches(bot, message, matching_service, profile_service):
    user_id = message.from_user.id
    token = await _resolve_token(bot, message.chat.id, user_id, profile_service)
    if not token:
        return
    result = await matching_service.list_matches(token)
    if not result.ok:
        await bot.send_message(message.chat.id, failure_text(result))
        return
    if not result.data:
        await bot.send_message(message.chat.id, "🕊️ Пока нет пар")
        return
    for match in result.data:
        partner = match["initiated_on"] if match["initiator"]["token"] == token else match["initiator"]
        await bot.send_message(
            message.chat.id,
            f"💞 {escape_markdown(partner.get('name') or '')} — id пары `{match['id']}`, сообщений: {len(match['messages'])}",
            reply_markup=match_keyboard(match["id"]),
            parse_mode="MarkdownV2"
        )


# Callback-обработчик dismatch
async def handle_dismatch(bot, call, matching_service, profile_service):
    user_id = call.from_user.id
    match_id = call.data.split('_', 1)[1]
    token = await _resolve_token(bot, user_id, user_id, profile_service)
    if not token:
        await bot.answer_callback_query(call.id)
        return
    matches = await matching_service.list_matches(token)
    match = next((m for m in matches.data if m["id"] == match_id), None) if matches.ok else None
    if match is None:
        await bot.answer_callback_query(call.id, "🔍 Пара не найдена")
        return
    other = match["initiated_on"] if match["initiator"]["token"] == token else match["initiator"]
    result = await matching_service.dismatch(token, other["token"], match_id)
    await bot.answer_callback_query(call.id, "💔 Пара удалена" if result.ok else failure_text(result))


async def handle_send_message(bot, message, matching_service, profile_service):
    """/msg <id пары> <текст>"""
    user_id = message.from_user.id
    parts = message.text.split(maxsplit=2)
    if len(parts) < 3:
        await bot.reply_to(message, "Используйте: /msg <id пары> <текст>")
        return
    token = await _resolve_token(bot, message.chat.id, user_id, profile_service)
    if not token:
        return
    result = await matching_service.append_match_message(
        parts[1], token, parts[2], datetime.now(timezone.utc)
    )
    await bot.reply_to(message, "✉️ Сообщение сохранено" if result.ok else failure_text(result))
