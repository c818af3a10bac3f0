"""
Seller payout recipients and the bank list used to register them
"""

from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import StoreError
from ..core.logging import get_logger
from ..models.profile import Profile
from ..utils.paystack import PaystackClient

logger = get_logger(__name__)

# Used to top up short or failed bank lists from Paystack
FALLBACK_BANKS = [
    {"name": "Access Bank", "code": "044"},
    {"name": "Zenith Bank", "code": "057"},
    {"name": "Guaranty Trust Bank", "code": "058"},
    {"name": "First Bank of Nigeria", "code": "011"},
    {"name": "United Bank for Africa", "code": "033"},
    {"name": "Fidelity Bank", "code": "070"},
    {"name": "Ecobank Nigeria", "code": "050"},
    {"name": "Stanbic IBTC Bank", "code": "221"},
    {"name": "Sterling Bank", "code": "232"},
    {"name": "Polaris Bank", "code": "076"},
    {"name": "Union Bank", "code": "032"},
    {"name": "Wema Bank", "code": "035"},
    {"name": "FCMB", "code": "214"},
    {"name": "Keystone Bank", "code": "082"},
    {"name": "Unity Bank", "code": "215"},
    {"name": "Jaiz Bank", "code": "301"},
    {"name": "Heritage Bank", "code": "030"},
    {"name": "SunTrust Bank", "code": "100"},
    {"name": "Providus Bank", "code": "101"},
    {"name": "Citibank Nigeria", "code": "023"},
]
MIN_BANKS = 20


def merge_bank_lists(banks: List[Dict], fallback: List[Dict] = FALLBACK_BANKS, minimum: int = MIN_BANKS) -> List[Dict[str, str]]:
    """De-duplicate by bank code, top up from ``fallback`` when short, sort by name"""
    seen = set()
    merged = []
    for bank in banks:
        code = str(bank.get("code") or "").strip()
        if not code or code in seen:
            continue
        seen.add(code)
        merged.append({"name": bank.get("name") or code, "code": code})

    if len(merged) < minimum:
        for bank in fallback:
            if bank["code"] not in seen:
                seen.add(bank["code"])
                merged.append(dict(bank))

    merged.sort(key=lambda b: b["name"].lower())
    return merged


class RecipientService:
    def __init__(self, db: Session, gateway: PaystackClient):
        self.db = db
        self.gateway = gateway

    def register(self, user_id: str, bank_code: str, account_number: str, account_name: str) -> str:
        """
        Register the seller's bank account with Paystack and keep the code.

        Registering again replaces the stored recipient.
        """
        recipient = self.gateway.create_recipient(bank_code, account_number, account_name)

        try:
            profile = self.db.query(Profile).filter(Profile.id == user_id).first()
            if profile is None:
                profile = Profile(id=user_id)
                self.db.add(profile)
            profile.paystack_recipient_code = recipient.recipient_code
            profile.bank_name = recipient.bank_name
            profile.account_number = account_number
            profile.account_name = account_name
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Saving recipient for {user_id} failed: {e}")
            raise StoreError("Saving recipient failed")

        logger.info(f"Registered payout recipient for user {user_id}", extra={"event": "recipient_registered"})
        return recipient.recipient_code

    def list_banks(self) -> List[Dict[str, str]]:
        return merge_bank_lists(self.gateway.list_banks())
