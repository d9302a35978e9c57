"""
Recalculate Order Totals

Re-applies the pricing engine to every stored order and reports the
orders whose subtotal, tax, discount or total changed. Coupons are
evaluated as of each order's creation date.

Run from project root:
    python scripts/recalculate_totals.py            # apply changes
    python scripts/recalculate_totals.py --dry-run  # report only

Author: Khalil Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from order_engine.core.config import setup_logging
from order_engine.database import async_session_maker
from order_engine.services.order_factory import OrderFactory
from order_engine.services.repositories import OrderRepository

FIELDS = ("subtotal", "tax_amount", "discount_amount", "total")


def snapshot(order) -> dict:
    return {field: getattr(order, field) for field in FIELDS}


async def recalculate(dry_run: bool = False, session_maker=async_session_maker) -> int:
    """
    Recompute totals for all orders.

    Returns:
        int: Number of orders whose stored totals differed
    """
    changed = 0

    async with session_maker() as session:
        factory = OrderFactory(session, cart_provider=None, address_validator=None)
        orders = await OrderRepository(session).list_all()

        for order in orders:
            before = snapshot(order)
            factory.recalculate_totals(order)
            after = snapshot(order)

            if before != after:
                changed += 1
                diff = ", ".join(
                    f"{field} {before[field]} -> {after[field]}"
                    for field in FIELDS if before[field] != after[field]
                )
                print(f"   ✏️  {order.no}: {diff}")

        if dry_run:
            await session.rollback()
        else:
            await session.commit()

    print(f"\n📊 {len(orders)} order(s) checked, {changed} changed")
    if dry_run and changed:
        print("   (dry run: nothing written)")
    return changed


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Re-apply pricing to stored orders")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="report differences without writing them",
    )
    args = parser.parse_args(argv)

    setup_logging()

    print("=" * 60)
    print("🧮 RECALCULATE ORDER TOTALS")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)

    asyncio.run(recalculate(dry_run=args.dry_run))
    return 0


if __name__ == "__main__":
    sys.exit(main())
