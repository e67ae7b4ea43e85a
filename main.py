import logging
import asyncio
import sys
from datetime import datetime, timedelta

from init import Session, init_tables, _engine
from staking_system.services.config_service import ConfigService
from staking_system.services.distribution_service import DistributionService
from staking_system.utils.time_machine import timeMachine
import config

logger = logging.getLogger(__name__)


class DistributionScheduler:
    """Runs the daily distribution once a day at DISTRIBUTION_HOUR_UTC."""

    def __init__(self, hourUtc: int = config.DISTRIBUTION_HOUR_UTC):
        self.hourUtc = hourUtc
        self._running = False

    def secondsUntilNextRun(self, now: datetime) -> float:
        nextRun = now.replace(hour=self.hourUtc, minute=0, second=0, microsecond=0)
        if nextRun <= now:
            nextRun += timedelta(days=1)
        return (nextRun - now).total_seconds()

    async def runOnce(self) -> dict:
        with Session() as session:
            return await DistributionService(session).distributeDailyRewards()

    async def run(self):
        """
        Запускает ежедневное распределение
        """
        logger.info(f"Distribution scheduler started, daily at {self.hourUtc:02d}:00 UTC")
        self._running = True

        while self._running:
            delay = self.secondsUntilNextRun(timeMachine.now)
            logger.info(f"Next distribution in {int(delay)} seconds")
            await asyncio.sleep(delay)

            try:
                await self.runOnce()
            except Exception as e:
                logger.error(f"Error in distribution scheduler main loop: {e}")

    async def stop(self):
        """
        Останавливает планировщик
        """
        self._running = False
        logger.info("Distribution scheduler stopped")


async def setup():
    """Создает таблицы и заполняет настройки по умолчанию"""
    init_tables(_engine)
    with Session() as session:
        await ConfigService(session).initializeDefaults()
        session.commit()


async def main(argv):
    """Основная асинхронная функция"""
    await setup()
    scheduler = DistributionScheduler()

    if len(argv) > 1 and argv[1] == "once":
        result = await scheduler.runOnce()
        logger.info(f"Distribution result: {result}")
        return

    try:
        await scheduler.run()
    finally:
        await scheduler.stop()


if __name__ == '__main__':
    try:
        logging.basicConfig(
            level=config.LOG_LEVEL,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        asyncio.run(main(sys.argv))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Планировщик остановлен.")
    except Exception as e:
        logger.critical(f"Unexpected error: {e}")
        raise
