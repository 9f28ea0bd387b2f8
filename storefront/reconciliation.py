import csv
from io import StringIO
from typing import Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.config import TransactionStatus
from storefront.logging_config import get_logger
from storefront.models import models


logger = get_logger(__name__)

def _earned_by_user(db: Session) -> Dict[str, int]:
    rows = (
        db.query(models.Transaction.user_id, func.sum(models.Transaction.points_earned))
        .filter(models.Transaction.status == TransactionStatus.SUCCESS.value)
        .group_by(models.Transaction.user_id)
        .all()
    )
    return {user_id: int(total or 0) for user_id, total in rows}

def _spent_by_user(db: Session) -> Dict[str, int]:
    rows = (
        db.query(models.UserVoucher.user_id, func.sum(models.UserVoucher.points_spent))
        .group_by(models.UserVoucher.user_id)
        .all()
    )
    return {user_id: int(total or 0) for user_id, total in rows}

def generate_points_reconciliation_csv(db: Session) -> Tuple[str, int]:
    """
    Compare each profile's stored loyalty points with the balance implied by its
    purchases and redemptions, and return CSV text plus mismatch count.
    """
    earned = _earned_by_user(db)
    spent = _spent_by_user(db)
    stored = {profile.id: profile.loyalty_points for profile in db.query(models.Profile).all()}

    mismatches: List[tuple] = []
    for user_id in sorted(stored.keys() | earned.keys() | spent.keys()):
        expected = earned.get(user_id, 0) - spent.get(user_id, 0)
        # a user with ledger activity but no profile row counts as 0 stored points
        actual = stored.get(user_id, 0)
        if actual != expected:
            mismatches.append((user_id, actual, expected, actual - expected))

    logger.info("Points reconciliation complete with %s mismatches", len(mismatches))
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["userId", "storedPoints", "expectedPoints", "difference"])
    for row in mismatches:
        writer.writerow(row)

    return output.getvalue(), len(mismatches)
