"""Bridge probation-year leave credits into the regularization year.

Employees hired last year and regularized during --year get their probation
accrual as a pending credit, posted on the first approval that uses credits:
  PYTHONPATH=backend python scripts/process_regularization.py --year 2025 --dry-run
"""

from __future__ import annotations

import argparse
from datetime import date
import logging

from sqlalchemy import select

from app.db.session import SessionLocal
from app.models.user import User
from app.services.credit_ledger import eligibility_date_for, process_regularization

logger = logging.getLogger("process_regularization")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--year", type=int, default=None, help="Regularization year (defaults to the current year)")
    parser.add_argument("--user", dest="user_id", default=None, help="Only process this user id")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be bridged and roll back")
    return parser.parse_args()


def run(*, year: int, user_id: str | None, dry_run: bool, today: date) -> int:
    with SessionLocal() as session:
        query = select(User).where(User.is_active.is_(True)).order_by(User.email.asc())
        if user_id is not None:
            query = query.where(User.id == user_id)

        processed = 0
        for user in session.execute(query).scalars():
            bridge = process_regularization(session, user, year, today=today)
            if bridge is None:
                continue
            processed += 1
            logger.info(
                "%s: hired %s, regularized %s, %.2f credit(s) over %s month(s)",
                user.email,
                user.hired_date,
                eligibility_date_for(user),
                bridge.credits,
                bridge.months_accrued,
            )

        if dry_run:
            session.rollback()
            logger.info("Dry run: %s user(s) would be bridged into %s", processed, year)
        else:
            session.commit()
            logger.info("Bridged regularization credits for %s user(s) into %s", processed, year)
        return processed


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = _parse_args()
    today = date.today()
    run(year=args.year or today.year, user_id=args.user_id, dry_run=args.dry_run, today=today)


if __name__ == "__main__":
    main()
