"""
Grant credits to an account (operator tool, not exposed over HTTP).
Run with: python -m scripts.grant_credits <user_id> <amount>
"""
import argparse
import logging

from upfolio.core.config import settings
from upfolio.core.errors import AppError
from upfolio.core.logging import configure_logging
from upfolio.db.session import SessionLocal
from upfolio.services.credit_service import CreditLedger

logger = logging.getLogger("scripts.grant_credits")


def grant_credits(user_id: int, amount: int) -> int:
    db = SessionLocal()
    try:
        balance = CreditLedger(db).grant(user_id, amount)
        logger.info(
            "credits.granted_by_operator",
            extra={"target_user_id": user_id, "amount": amount, "balance": balance.balance},
        )
        print(f"Granted {amount} credits to user {user_id}. New balance: {balance.balance}")
        return 0
    except AppError as exc:
        print(f"Grant failed ({exc.code}): {exc.message}")
        return 1
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Grant credits to an account.")
    parser.add_argument("user_id", type=int)
    parser.add_argument("amount", type=int)
    args = parser.parse_args(argv)

    configure_logging(settings.log)
    return grant_credits(args.user_id, args.amount)


if __name__ == "__main__":
    raise SystemExit(main())
