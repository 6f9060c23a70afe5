"""
backend/verify.py

Purpose:
    CLI entrypoint for the pool health check.

Dependencies:
    - nflpool.database
    - nflpool.checks.pool_check
"""

import asyncio
import os
import sys
from pprint import pprint

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from nflpool.checks.pool_check import PoolHealthCheck
from nflpool.database import close_db, connect_db


async def main() -> int:
    print("\nSTARTING NFL POOL HEALTH CHECK")
    print("=" * 50)

    try:
        await connect_db()
        report = await PoolHealthCheck.run()

        print("\n--- REPORT ---")
        pprint(report, indent=2)
        print("-" * 50)

        if report.get("status") == "HEALTHY":
            print("\nSYSTEM GREEN: database, schedule and survivor state look consistent.")
            return 0

        print(f"\nSYSTEM RED: Status is {report.get('status')}")
        print("Check the error report above.")
        return 1
    except Exception as e:
        print(f"FATAL ERROR: {e}")
        return 1
    finally:
        await close_db()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
