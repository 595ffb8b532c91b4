from typing import List, Optional
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from refbot.commands.types import Button


def response_keyboard(buttons: Optional[List[List[Button]]]) -> Optional[InlineKeyboardMarkup]:
    if not buttons:
        return None
    kb = InlineKeyboardBuilder()
    for row in buttons:
        kb.row(*[
            InlineKeyboardButton(text=button.text, url=button.url) if button.url
            else InlineKeyboardButton(text=button.text, callback_data=button.data or button.text)
            for button in row
        ])
    return kb.as_markup()
