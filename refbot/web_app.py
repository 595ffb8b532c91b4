from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request
from loguru import logger

from refbot.commands import texts
from refbot.commands.types import BotResponse, Button, ResponseType
from refbot.storage.base import Storage
from refbot.users.schemas import UserCount, UserOut, WithdrawalOut, WithdrawalStatusUpdate

DEMO_REFERRAL_CODE = "Ani68xfC"
DEMO_USERNAME = "Ezihe001"


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def demo_messages(bot_username: str, referral_bonus: int) -> List[dict]:
    """Canned conversation for the chat demo page, built from the real bot texts."""
    link = f"https://t.me/{bot_username}?start={DEMO_REFERRAL_CODE}"
    script = [
        ("bot", BotResponse(ResponseType.TEXT, texts.welcome(referral_bonus) +
                            "Start earning today! 💰\nUse /refer to get your referral link\n"
                            "Use /help to see all commands"), "11:17 PM"),
        ("bot", BotResponse(ResponseType.WARNING, texts.VERIFICATION_REQUIRED), "11:17 PM"),
        ("bot", BotResponse(ResponseType.BUTTONS, "", buttons=[
            [Button("📋 Join Channel", url="https://t.me/naijavaluechannel"),
             Button("👥 Join Community", url="https://t.me/naijavaluegroup")],
            [Button("✅ I've Joined Both", data="/joined")],
        ]), "11:17 PM"),
        ("bot", BotResponse(ResponseType.SUCCESS,
                            "✅ Thank you for joining our community!\n\n"
                            "You now have full access to all bot features including:\n"
                            "• Referring friends\n• Checking your balance\n• Requesting withdrawals\n\n"
                            "Use the buttons below to navigate:"), "11:26 PM"),
        ("bot", BotResponse(ResponseType.TEXT, "👇 Use the buttons below to navigate 👇"), "11:27 PM"),
        ("user", "💰 Balance", "11:27 PM"),
        ("bot", BotResponse(ResponseType.BALANCE, texts.balance(0, 0, 0, referral_bonus)), "11:27 PM"),
        ("user", "💳 Withdraw", "11:27 PM"),
        ("bot", BotResponse(ResponseType.ERROR, texts.WEEKEND_ONLY), "11:27 PM"),
        ("user", "/withdraw 1000", "11:28 PM"),
        ("bot", BotResponse(ResponseType.ERROR, texts.WEEKEND_ONLY), "11:28 PM"),
        ("user", "📊 Stats", "11:28 PM"),
        ("bot", BotResponse(ResponseType.STATS, texts.stats(DEMO_USERNAME, 0, 0, 1, 0, referral_bonus)), "11:28 PM"),
        ("user", "/refer", "11:28 PM"),
        ("bot", BotResponse(ResponseType.REFERRAL, texts.referral(link, 0)), "11:28 PM"),
    ]
    messages = []
    for number, (sender, content, timestamp) in enumerate(script, start=1):
        if isinstance(content, BotResponse):
            content = content.to_dict()
            if not content["message"]:
                del content["message"]
        messages.append({"id": number, "type": sender, "content": content, "timestamp": timestamp})
    return messages


def create_app(storage: Storage, settings=None) -> FastAPI:
    app = FastAPI(title="Referral Bot API", description="Users dashboard and chat demo data for the referral bot")
    app.state.storage = storage
    web_app_url = settings.WEB_APP_URL if settings else "http://localhost:5000"
    bot_username = settings.BOT_USERNAME if settings else "NaijaValueorg_bot"
    referral_bonus = settings.REFERRAL_BONUS if settings else 1000

    @app.get("/health")
    async def health():
        return {"status": "ok", "message": "Bot is running"}

    @app.get("/api/bot/info")
    async def bot_info():
        return {"webAppUrl": web_app_url, "status": "active"}

    @app.get("/api/users", response_model=List[UserOut])
    async def get_users(storage: Storage = Depends(get_storage)):
        """Return every registered user for the dashboard."""
        try:
            return await storage.get_all_users()
        except Exception as e:
            logger.error(f"Error getting users: {e}")
            raise HTTPException(status_code=500, detail="Failed to get users")

    @app.get("/api/users/count", response_model=UserCount)
    async def get_users_count(storage: Storage = Depends(get_storage)):
        try:
            users = await storage.get_all_users()
        except Exception as e:
            logger.error(f"Error counting users: {e}")
            raise HTTPException(status_code=500, detail="Failed to count users")
        return {"count": len(users)}

    @app.get("/api/users/{user_id}/withdrawals", response_model=List[WithdrawalOut])
    async def get_user_withdrawals(user_id: int, storage: Storage = Depends(get_storage)):
        try:
            user = await storage.get_user(user_id)
            withdrawals = await storage.get_withdrawals_by_user_id(user_id) if user else []
        except Exception as e:
            logger.error(f"Error getting withdrawals for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to get withdrawals")
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return withdrawals

    @app.patch("/api/withdrawals/{withdrawal_id}", response_model=WithdrawalOut)
    async def update_withdrawal(withdrawal_id: int, update: WithdrawalStatusUpdate,
                                storage: Storage = Depends(get_storage)):
        """
        Manual status change by an admin after paying out (or declining)
        a withdrawal. Nothing in the bot moves a withdrawal out of pending.
        """
        try:
            withdrawal = await storage.update_withdrawal_status(withdrawal_id, update.status.value)
        except Exception as e:
            logger.error(f"Error updating withdrawal {withdrawal_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update withdrawal")
        if withdrawal is None:
            raise HTTPException(status_code=404, detail="Withdrawal not found")
        logger.info(f"Withdrawal {withdrawal_id} marked {withdrawal.status}")
        return withdrawal

    @app.get("/api/demo/user")
    async def get_demo_user():
        return {
            "id": 1,
            "username": DEMO_USERNAME,
            "telegramId": "123456789",
            "balance": 0,
            "totalEarnings": 0,
            "totalReferrals": 0,
            "referralCode": DEMO_REFERRAL_CODE,
            "isActive": True,
            "joinedAt": datetime.now().isoformat(),
            "rank": 1,
        }

    @app.get("/api/demo/messages")
    async def get_demo_messages():
        return demo_messages(bot_username, referral_bonus)

    return app
