import sys
from sqlalchemy.orm import Session
from storefront.database import SessionLocal
from storefront.reconciliation import generate_points_reconciliation_csv

def reconcile(output_path: str = "points_reconciliation.csv") -> int:
    db: Session = SessionLocal()
    try:
        csv_text, mismatch_count = generate_points_reconciliation_csv(db)
    finally:
        db.close()
    with open(output_path, "w", newline="") as f:
        f.write(csv_text)
    return 1 if mismatch_count else 0

if __name__ == "__main__":
    exit_code = reconcile(*sys.argv[1:2])
    raise SystemExit(exit_code)
