"""Post monthly leave credit accrual for active users.

Run at the start of each month for the month that just ended:
  PYTHONPATH=backend python scripts/accrue_leave_credits.py --year 2025 --month 2

Without --month every completed month of --year is backfilled.
"""

from __future__ import annotations

import argparse
from datetime import date
import logging

from sqlalchemy import select

from app.db.session import SessionLocal
from app.models.user import User
from app.services.credit_ledger import accrue_monthly, backfill_credits

logger = logging.getLogger("accrue_leave_credits")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--year", type=int, default=None, help="Accrual year (defaults to the current year)")
    parser.add_argument("--month", type=int, choices=range(1, 13), default=None, help="Single month to post")
    parser.add_argument("--user", dest="user_id", default=None, help="Only accrue for this user id")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be posted and roll back")
    return parser.parse_args()


def run(*, year: int, month: int | None, user_id: str | None, dry_run: bool, today: date) -> int:
    with SessionLocal() as session:
        query = select(User).where(User.is_active.is_(True)).order_by(User.email.asc())
        if user_id is not None:
            query = query.where(User.id == user_id)

        created = 0
        for user in session.execute(query).scalars():
            if month is None:
                count = backfill_credits(session, user, today=today, year=year)
            else:
                _, was_created = accrue_monthly(session, user, year, month, today=today)
                count = int(was_created)
            if count:
                logger.info("%s: %s month(s) posted", user.email, count)
            created += count

        if dry_run:
            session.rollback()
            logger.info("Dry run: %s row(s) would be created", created)
        else:
            session.commit()
            logger.info("Created %s leave credit row(s)", created)
        return created


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = _parse_args()
    today = date.today()
    run(
        year=args.year or today.year,
        month=args.month,
        user_id=args.user_id,
        dry_run=args.dry_run,
        today=today,
    )


if __name__ == "__main__":
    main()
