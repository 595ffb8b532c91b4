from html import escape
from typing import List, Optional

from refbot.commands.types import Button

BOT_TITLE = "𝐍𝐀𝐈𝐉𝐀 𝐕𝐀𝐋𝐔𝐄"

REGISTER_FIRST = "You need to register first. Use /start to begin."
START_FIRST = "Please use /start to register first."
UNKNOWN_COMMAND = "Unknown command. Type /help to see available commands."
SEND_FAILED = "Sorry, an error occurred. Please try again later."

VERIFICATION_REQUIRED = (
    "⚠️ MANDATORY REQUIREMENT ⚠️\n\n"
    "You must join our channel and community group to use this bot.\n\n"
    "Please use the buttons below to join, then click \"✅ I've Joined Both\""
)

WEEKEND_ONLY = (
    "❌ Withdrawals are only processed on weekends (Saturday & Sunday).\n\n"
    "Please check back on weekend!"
)

INVALID_AMOUNT = (
    "❌ Please specify a valid amount to withdraw.\n\n"
    "Example: /withdraw 1000"
)


def bank_details_saved(details: str) -> str:
    return (
        "✅ Bank details saved!\n\n"
        f"🏦 {escape(details)}\n\n"
        "They will be used for all future withdrawals."
    )


BANK_DETAILS_EMPTY = "❌ Bank details cannot be empty. Please send ACC NUMBER, BANK NAME and ACC NAME."

MENU_BUTTONS = [
    [Button("💰 Balance", data="/balance"), Button("💳 Withdraw", data="/withdraw")],
    [Button("🔗 Invite Friends", data="/refer"), Button("📊 Stats", data="/stats")],
    [Button("💵 Payment Info", data="/payment_info"), Button("💳 Payment Method", data="/payment_method")],
]

RETURN_TO_MENU = Button("🏠 Return to Menu", data="/start")
CHECK_BALANCE = Button("💰 Check Balance", data="/balance")


def verification_buttons(channel_url: str, community_url: str) -> List[List[Button]]:
    return [
        [Button("📋 Join Channel", url=channel_url), Button("👥 Join Community", url=community_url)],
        [Button("✅ I've Joined Both", data="/joined")],
    ]


def welcome(referral_bonus: int) -> str:
    return (
        f"✨ Welcome to {BOT_TITLE} Bot ✨\n\n"
        "Make money by referring new members to our community! 💰\n\n"
        "What We Offer:\n"
        f"• Earn ₦{referral_bonus} for each referral\n"
        "• Weekend withdrawals\n"
        "• Real-time tracking\n"
        "• 24/7 automated system\n\n"
    )


def balance(balance: int, total_referrals: int, total_earnings: int, referral_bonus: int) -> str:
    return (
        "💰 Your Balance 💰\n\n"
        f"Current Balance: ₦{balance}\n\n"
        "📊 Summary:\n"
        f"• Total Referrals: {total_referrals}\n"
        f"• Earnings per Referral: ₦{referral_bonus}\n"
        f"• Total Earnings: ₦{total_earnings}\n\n"
        "💳 To withdraw, use:\n"
        "/withdraw [amount]\n\n"
        "Note: Withdrawals are processed on weekends only (Saturday & Sunday)."
    )


def stats(username: str, balance: int, total_referrals: int, rank: int,
          total_earnings: int, referral_bonus: int) -> str:
    return (
        "📊 Your Stats 📊\n\n"
        f"👤 Username: {escape(username)}\n"
        f"💰 Balance: ₦{balance}\n"
        f"🔗 Referrals: {total_referrals}\n"
        f"🏆 Rank: #{rank}\n\n"
        "📝 Performance:\n"
        f"• Earnings per Referral: ₦{referral_bonus}\n"
        f"• Total Earnings: ₦{total_earnings}\n\n"
        "✨ Share your referral link to earn more!\n"
        "Use /refer to get your link."
    )


def referral(link: str, total_referrals: int) -> str:
    return (
        "🔗 Your Referral Link 🔗\n\n"
        f"{link}\n\n"
        "💰 Share this link with your friends to earn rewards!\n\n"
        f"📊 You currently have {total_referrals} confirmed referrals.\n\n"
        "How it works:\n"
        "1. Share your unique referral link\n"
        "2. Friends join using your link\n"
        "3. You earn rewards for each verified referral"
    )


def insufficient_balance(balance: int) -> str:
    return f"❌ Insufficient balance. Your current balance is ₦{balance}."


def withdrawal_processed(amount: int, new_balance: int) -> str:
    return (
        f"✅ Withdrawal of ₦{amount} has been processed successfully.\n\n"
        f"Your new balance: ₦{new_balance}\n\n"
        "Your request has been forwarded to our admin team and will be processed within 12-24 hours."
    )


def withdrawal_notice(username: str, telegram_id: str, amount: int, new_balance: int,
                      bank_details: Optional[str]) -> str:
    return (
        "📤 New withdrawal request\n\n"
        f"👤 User: {escape(username)} ({telegram_id})\n"
        f"💸 Amount: ₦{amount}\n"
        f"💰 Balance after: ₦{new_balance}\n"
        f"🏦 Bank details: {escape(bank_details) if bank_details else 'Not Set'}"
    )


def help_text(bonus_amount: int) -> str:
    return (
        "📋 Available Commands:\n\n"
        "/start - Start or restart the bot\n"
        "/balance - Check your current balance\n"
        "/stats - View your referral statistics\n"
        "/refer - Get your referral link\n"
        "/withdraw [amount] - Request a withdrawal (weekends only)\n"
        "/payment_info - View payment methods and info\n"
        "/payment_method - View account details for payments\n"
        "/withdrawal_request - Submit a withdrawal request\n"
        f"/earn_bonus - Earn {bonus_amount} naira bonus (available every minute)\n"
        "/help - Show this help message"
    )


def payment_info(support_contact: str) -> str:
    return (
        "💵 Payment Information 💵\n\n"
        "📝 Available Payment Methods:\n"
        "• Bank Transfer\n"
        "• Opay\n"
        "• Palmpay\n\n"
        "⏱️ Processing Time:\n"
        "• Withdrawals are processed on weekends only (Saturday & Sunday)\n"
        "• Processing time: 12-24 hours\n\n"
        "📋 Minimum Withdrawal: ₦1000\n\n"
        "📊 Withdrawal Status:\n"
        "• Pending - Your request is being processed\n"
        "• Completed - Payment has been sent\n"
        "• Rejected - Request was declined (rare)\n\n"
        f"🆘 Need help? Contact our support: {support_contact}"
    )


PAYMENT_METHOD = (
    "💳 Payment Method 💳\n\n"
    "Account Details:\n\n"
    "📱 Opay\n"
    "• Account Number: 913 817 9663\n"
    "• Account Name: TEMPLE NWACHI DAN-NWAOGU\n\n"
    "📝 Note:\n"
    "• All payments are processed manually\n"
    "• Transactions are handled on weekends only\n"
    "• Minimum withdrawal: ₦1000\n\n"
    "📌 Please ensure your account details are correct before submitting a withdrawal request."
)


def bonus_cooldown(seconds_left: int, balance: int) -> str:
    return (
        f"⏳ Please wait {seconds_left} seconds before claiming another bonus.\n\n"
        f"Current Balance: ₦{balance}"
    )


def bonus_added(bonus_amount: int, new_balance: int) -> str:
    return (
        "✅ Bonus Added Successfully!\n\n"
        f"+₦{bonus_amount} has been added to your balance.\n\n"
        f"New Balance: ₦{new_balance}\n\n"
        "You can earn again in 1 minute! ⏱️"
    )


def bank_details_form(bank_details: Optional[str]) -> str:
    return (
        "✏️ Now Send Your Correct Bank Details\n"
        "Format: ACC NUMBER\n"
        "               BANK NAME\n"
        "               ACC NAME\n"
        "⚠️ This Wallet Will Be Used For Future Withdrawals !!\n\n"
        f"🏦Your Set Bank Details Is:  {escape(bank_details) if bank_details else '⛔ Not Set'}\n\n"
        "💹 It Will Be Used For All Future Withdrawals."
    )


def withdrawal_schedule(username: str) -> str:
    return (
        f"Hi {escape(username)}, \n"
        "🔒Withdrawal opens from 12:00am on Saturdays till 10:00pm on Sunday \n\n"
        "To qualify for the next withdrawal, make sure to invite 10 friends or more.\n\n"
        "We advise you to keep tapping and inviting friends to earn more cash."
    )


def new_referral(username: str, referral_bonus: int, total_referrals: int) -> str:
    return (
        "🎉 New referral!\n\n"
        f"{escape(username)} joined using your link.\n"
        f"+₦{referral_bonus} has been added to your balance.\n\n"
        f"🔗 Total referrals: {total_referrals}"
    )


TOUR_STEPS = {
    1: (
        "1️⃣ Let's start with your Balance!\n\n"
        "Click the Balance button to check:\n"
        "• Your current earnings\n"
        "• Total referrals\n"
        "• Earnings per referral",
        [[CHECK_BALANCE], [Button("➡️ Next Tip", data="/tour_2")], [Button("❌ End Tour", data="/start")]],
    ),
    2: (
        "2️⃣ Ready to earn? Let's invite friends!\n\n"
        "The Invite Friends button will:\n"
        "• Generate your unique referral link\n"
        "• Track your referrals\n"
        "• Show your earnings",
        [[Button("🔗 Try Inviting", data="/refer")], [Button("➡️ Next Tip", data="/tour_3")],
         [Button("❌ End Tour", data="/start")]],
    ),
    3: (
        "3️⃣ Time to get paid! 💰\n\n"
        "Withdrawals are processed on weekends.\n"
        "Check Payment Info to see:\n"
        "• Available payment methods\n"
        "• Minimum withdrawal amount\n"
        "• Processing times",
        [[Button("💵 Payment Info", data="/payment_info")], [Button("➡️ Next Tip", data="/tour_4")],
         [Button("❌ End Tour", data="/start")]],
    ),
    4: (
        "4️⃣ Track your success! 📊\n\n"
        "The Stats button shows:\n"
        "• Your total referrals\n"
        "• Overall earnings\n"
        "• Current rank\n\n"
        "That's it! You're ready to start earning! 🎉",
        [[Button("📊 View Stats", data="/stats")], [Button("🏁 Finish Tour", data="/start")]],
    ),
}
