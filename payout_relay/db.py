from decimal import Decimal
from typing import Optional

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from payout_relay.database import get_db
from payout_relay.logging_config import get_logger
from payout_relay.models import Payment, Referral, User

logger = get_logger(__name__)


class LedgerStore:
    """
    Ledger reads and writes used by the webhook handler. Each call to
    `apply_payment` is one database transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def payment_exists(self, transaction_ref: str) -> bool:
        stmt = select(Payment.id).where(Payment.transaction_ref == transaction_ref)
        return self.db.execute(stmt).first() is not None

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email).limit(1)).scalars().first()

    def apply_payment(self, user: User, transaction_ref: str, amount: Decimal) -> Optional[Decimal]:
        """
        Mark `user` paid, record the payment and credit the referrer, if any.
        Returns the amount credited to the referrer.
        """
        share = amount / 2
        try:
            user.paid = True
            self.db.add(
                Payment(
                    user_uid=user.uid,
                    transaction_ref=transaction_ref,
                    amount=amount,
                    admin_share=share,
                )
            )
            credited = None
            if user.referrer_uid:
                credited = self._credit_referrer(user, share)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return credited

    def _credit_referrer(self, user: User, share: Decimal) -> Optional[Decimal]:
        # single UPDATE; the balance is never read back and rewritten
        result = self.db.execute(
            update(User)
            .where(User.uid == user.referrer_uid)
            .values(balance=User.balance + share)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "Referrer not found uid=%s for referred user uid=%s, skipping referral credit",
                user.referrer_uid,
                user.uid,
            )
            return None
        self.db.add(
            Referral(
                referrer_uid=user.referrer_uid,
                ref_uid=user.uid,
                name=user.name,
                earn=share,
            )
        )
        return share


def get_ledger(db: Session = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db)
