from datetime import datetime, timedelta
from typing import Any, Dict, List

# Sample accounts shown on the dashboard when SEED_DEMO_USERS is on
DEMO_USERS = [
    {"username": "Ezihe001", "telegram_id": "123456789", "balance": 2000,
     "total_referrals": 2, "referral_code": "Ani68xfC", "days_ago": 30},
    {"username": "JohnDoe", "telegram_id": "987654321", "balance": 5000,
     "total_referrals": 5, "referral_code": "Joh43xTr", "days_ago": 20},
    {"username": "Alice_Smith", "telegram_id": "555666777", "balance": 3000,
     "total_referrals": 3, "referral_code": "Ali92qWe", "days_ago": 15},
    {"username": "Bob_Johnson", "telegram_id": "111222333", "balance": 1000,
     "total_referrals": 1, "referral_code": "Bob76zPo", "days_ago": 10},
    {"username": "Sarah123", "telegram_id": "444555666", "balance": 0,
     "total_referrals": 0, "referral_code": "Sar38vBn", "days_ago": 5},
]


def demo_user_fields(now: datetime) -> List[Dict[str, Any]]:
    fields = []
    for entry in DEMO_USERS:
        fields.append({
            "username": entry["username"],
            "telegram_id": entry["telegram_id"],
            "balance": entry["balance"],
            "total_earnings": entry["balance"],
            "total_referrals": entry["total_referrals"],
            "referral_code": entry["referral_code"],
            "referred_by": None,
            "is_active": True,
            "is_verified": True,
            "bank_details": None,
            "last_bonus_at": None,
            "joined_at": now - timedelta(days=entry["days_ago"]),
        })
    return fields
