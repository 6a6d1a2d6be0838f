#!/usr/bin/env python3
"""Price alert sweep for cron hosts without HTTP access to the API.

Same sweep as POST /v1/cron/price-alert-check, run as a one-off process.

Run (local / Railway Cron):
  cd services/api
  python -m scripts.sweep_price_alerts

Optional env vars:
  SWEEP_BATCH_SIZE=50
  SWEEP_WINDOW_DAYS=7
"""

import asyncio
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from umoja.services.sms_client import close_sms_gateway  # noqa: E402
from umoja.services.sweeper import AlertSweeper  # noqa: E402
from umoja.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from umoja.stores.redis import close_redis, init_redis  # noqa: E402


async def main() -> None:
    # Initialize shared connections (same as API lifespan, but for a one-off cron run)
    await init_db()
    await ping_db()
    try:
        await init_redis()
    except Exception as e:
        # Without Redis the sweep runs unlocked; the conditional claim still prevents double firing.
        print(f"Redis unavailable, sweeping unlocked: {e!r}")

    try:
        stats = await AlertSweeper().run()
        print({"ok": True, **stats.to_dict()})
    finally:
        await close_sms_gateway()
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
