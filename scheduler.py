# scheduler.py
import asyncio
import logging
import datetime
import signal
from typing import Optional
from zoneinfo import ZoneInfo

from recruitbot.core.config import settings
from recruitbot.core.container import Container
from recruitbot.db.session import engine

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("Scheduler")

LOCAL_TZ = ZoneInfo(settings.interviews.timezone)


def seconds_until(at_time: str, tz: ZoneInfo = LOCAL_TZ,
                  now: Optional[datetime.datetime] = None) -> float:
    """Seconds from `now` to the next HH:MM in `tz` (today if still ahead, otherwise tomorrow)."""
    now = (now or datetime.datetime.now(tz)).astimezone(tz)
    target_time = datetime.datetime.strptime(at_time, "%H:%M").time()
    target = datetime.datetime.combine(now.date(), target_time, tzinfo=tz)
    if target <= now:
        target += datetime.timedelta(days=1)
    return (target - now).total_seconds()


class Scheduler:
    def __init__(self, container: Container):
        self.container = container
        self.is_running = True
        self._stopped = asyncio.Event()

    async def start(self):
        logger.info("🚀 Scheduler started")

        # Independent daily loops
        await asyncio.gather(
            self._loop_confirmation_reminders(),   # WhatsApp reminder the day before the interview
            self._loop_unfilled_alerts(),          # E-mail alerts for open requisitions
        )

    async def stop(self):
        logger.info("🛑 Stopping scheduler...")
        self.is_running = False
        self._stopped.set()

    async def _sleep(self, seconds: float):
        """Sleeps, waking up early when the scheduler is stopped."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    # --- 1. CONFIRMATION REMINDERS ---
    async def _loop_confirmation_reminders(self):
        while self.is_running:
            cfg = settings.reminders
            await self._sleep(seconds_until(cfg.at_time))
            if not self.is_running:
                break
            if not cfg.enabled:
                logger.info("⏸️ Confirmation reminders are disabled in config")
                continue

            try:
                logger.info("⏰ Running confirmation reminders...")
                summary = await self.container.reminders.run()
                logger.info(f"✅ Reminders done: {summary.sent} sent, {summary.failed} failed")
            except Exception as e:
                logger.error(f"❌ Error in the reminders loop: {e}", exc_info=True)

    # --- 2. UNFILLED REQUISITION ALERTS ---
    async def _loop_unfilled_alerts(self):
        while self.is_running:
            cfg = settings.alerts
            await self._sleep(seconds_until(cfg.at_time))
            if not self.is_running:
                break
            if not cfg.enabled:
                logger.info("⏸️ Unfilled requisition alerts are disabled in config")
                continue

            try:
                results = await self.container.alerts.run_daily()
                logger.info(f"✅ Alert check done: {sum(results.values())} unfilled across {len(results)} tenants")
            except Exception as e:
                logger.error(f"❌ Error in the alerts loop: {e}", exc_info=True)


async def main():
    container = Container.from_database()
    scheduler = Scheduler(container)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(scheduler.stop()))
    try:
        await scheduler.start()
    finally:
        await container.close()
        await engine.dispose()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
