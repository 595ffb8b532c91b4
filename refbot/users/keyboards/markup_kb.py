from aiogram.types import ReplyKeyboardMarkup
from aiogram.utils.keyboard import ReplyKeyboardBuilder


def main_menu_keyboard() -> ReplyKeyboardMarkup:
    kb = ReplyKeyboardBuilder()
    kb.button(text="💰 Balance")
    kb.button(text="📊 Stats")
    kb.button(text="🔗 Invite Friends")
    kb.button(text="💳 Withdraw")
    kb.button(text="💵 Payment Info")
    kb.button(text="💳 Payment Method")
    kb.button(text="📝 Withdrawal Request")
    kb.button(text="🎁 Earn Bonus")
    kb.adjust(2, 2, 2, 2)
    return kb.as_markup(resize_keyboard=True)
