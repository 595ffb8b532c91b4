import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class CommandType(str, Enum):
    START = "start"
    BALANCE = "balance"
    STATS = "stats"
    REFER = "refer"
    WITHDRAW = "withdraw"
    HELP = "help"
    JOINED = "joined"
    PAYMENT_INFO = "payment_info"
    PAYMENT_METHOD = "payment_method"
    WITHDRAWAL_REQUEST = "withdrawal_request"
    EARN_BONUS = "earn_bonus"
    TOUR = "tour"
    UNKNOWN = "unknown"


# Commands an unverified user may run
UNGATED_COMMANDS = frozenset({CommandType.START, CommandType.JOINED})


@dataclass(frozen=True)
class BotCommand:
    type: CommandType
    amount: int = 0
    referral_code: Optional[str] = None
    step: int = 1
    name: Optional[str] = None  # raw name of an unknown command


class ResponseType(str, Enum):
    TEXT = "text"
    BUTTONS = "buttons"
    ERROR = "error"
    SUCCESS = "success"
    STATS = "stats"
    BALANCE = "balance"
    REFERRAL = "referral"
    WARNING = "warning"


class ErrorKind(str, Enum):
    UNREGISTERED_USER = "unregistered_user"
    UNKNOWN_COMMAND = "unknown_command"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    WEEKEND_ONLY = "weekend_only"
    COOLDOWN_ACTIVE = "cooldown_active"


@dataclass(frozen=True)
class Button:
    text: str
    data: Optional[str] = None
    url: Optional[str] = None


@dataclass
class BotResponse:
    type: ResponseType
    message: str
    buttons: Optional[List[List[Button]]] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def failure(cls, error: ErrorKind, message: str, **kwargs) -> "BotResponse":
        return cls(type=ResponseType.ERROR, message=message, error=error, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type.value, "message": self.message}
        if self.buttons:
            payload["buttons"] = [
                [{k: v for k, v in (("text", b.text), ("data", b.data), ("url", b.url)) if v is not None}
                 for b in row]
                for row in self.buttons
            ]
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error.value
        return payload


# Reply-keyboard texts and the commands they stand for
BUTTON_COMMANDS: Dict[str, BotCommand] = {
    "💰 Balance": BotCommand(CommandType.BALANCE),
    "📊 Stats": BotCommand(CommandType.STATS),
    "🔗 Refer": BotCommand(CommandType.REFER),
    "🔗 Invite Friends": BotCommand(CommandType.REFER),
    "💳 Withdraw": BotCommand(CommandType.WITHDRAW),
    "✅ I've Joined Both": BotCommand(CommandType.JOINED),
    "💵 Payment Info": BotCommand(CommandType.PAYMENT_INFO),
    "💳 Payment Method": BotCommand(CommandType.PAYMENT_METHOD),
    "📝 Withdrawal Request": BotCommand(CommandType.WITHDRAWAL_REQUEST),
    "🎁 Earn Bonus": BotCommand(CommandType.EARN_BONUS),
}

TOUR_PATTERN = re.compile(r"^tour_(start|\d+)$")


def parse_command(text: Optional[str]) -> Optional[BotCommand]:
    """
    Turn a message text or callback payload into a BotCommand.

    Returns None for plain text that is neither a command nor a known
    button. A malformed /withdraw amount parses as 0 so the processor can
    report it.
    """
    if not text:
        return None
    text = text.strip()

    if text in BUTTON_COMMANDS:
        return BUTTON_COMMANDS[text]
    if not text.startswith("/"):
        return None

    parts = text[1:].split(maxsplit=1)
    name = parts[0].split("@", 1)[0].lower() if parts else ""
    argument = parts[1].strip() if len(parts) > 1 else ""

    if name == CommandType.START.value:
        return BotCommand(CommandType.START, referral_code=argument.split()[0] if argument else None)
    if name == CommandType.WITHDRAW.value:
        amount = int(argument) if argument.isascii() and argument.isdigit() else 0
        return BotCommand(CommandType.WITHDRAW, amount=amount)

    match = TOUR_PATTERN.match(name)
    if match:
        step = 1 if match.group(1) == "start" else int(match.group(1))
        return BotCommand(CommandType.TOUR, step=step)

    try:
        command_type = CommandType(name)
    except ValueError:
        return BotCommand(CommandType.UNKNOWN, name=name)
    if command_type in (CommandType.TOUR, CommandType.UNKNOWN):
        return BotCommand(CommandType.UNKNOWN, name=name)
    return BotCommand(command_type)
