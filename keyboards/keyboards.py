from telebot import types

RECOMMENDATIONS_BUTTON = "Найти пару"
MATCHES_BUTTON = "Мои пары"
PROFILE_BUTTON = "Мой профиль"

# Главная клавиатура меню
main_menu_keyboard = types.ReplyKeyboardMarkup(resize_keyboard=True)
main_menu_keyboard.add(
    types.KeyboardButton(RECOMMENDATIONS_BUTTON),
    types.KeyboardButton(MATCHES_BUTTON),
    types.KeyboardButton(PROFILE_BUTTON),
    types.KeyboardButton("📍Отправить геолокацию", request_location=True)
)


# Кнопки под анкетой кандидата
def candidate_keyboard(candidate_token: str) -> types.InlineKeyboardMarkup:
    keyboard = types.InlineKeyboardMarkup()
    keyboard.row(
        types.InlineKeyboardButton("💌 Нравится", callback_data=f"like_{candidate_token}"),
        types.InlineKeyboardButton("✖️ Не моё", callback_data=f"dislike_{candidate_token}")
    )
    return keyboard


# callback_data ограничена 64 байтами, поэтому передаём только id пары
def match_keyboard(match_id: str) -> types.InlineKeyboardMarkup:
    keyboard = types.InlineKeyboardMarkup()
    keyboard.add(types.InlineKeyboardButton("💔 Расстаться", callback_data=f"dismatch_{match_id}"))
    return keyboard
