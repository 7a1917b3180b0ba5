from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from .storage.tx_store import TxStore
from .sync.adapter import LedgerSync

load_dotenv()


@dataclass(frozen=True)
class ScheduleConfig:
    test_mode: bool
    tz_name: str
    rollover_cron: str
    poll_seconds: int


def load_schedule_config() -> ScheduleConfig:
    """
    Env:
    - SCHED_TEST_MODE=1 -> rollover every minute, poll every second (dev)
    - SCHED_TZ=Asia/Jakarta (default, should match CASHBOOK_TZ)
    - SCHED_ROLLOVER_CRON="0 0 * * *" (business midnight: today's fee total resets)
    - SCHED_POLL_SECONDS=5 (pick up records written by other processes/devices)
    """
    test_mode = os.getenv("SCHED_TEST_MODE", "").strip() == "1"
    tz_name = os.getenv("SCHED_TZ", "Asia/Jakarta").strip() or "Asia/Jakarta"

    rollover_cron = os.getenv("SCHED_ROLLOVER_CRON", "0 0 * * *").strip()

    poll_seconds_str = os.getenv("SCHED_POLL_SECONDS", "5").strip()
    try:
        poll_seconds = int(poll_seconds_str)
    except ValueError:
        poll_seconds = 5
    if poll_seconds < 1:
        poll_seconds = 1

    if test_mode:
        rollover_cron = "* * * * *"
        poll_seconds = 1

    return ScheduleConfig(
        test_mode=test_mode,
        tz_name=tz_name,
        rollover_cron=rollover_cron,
        poll_seconds=poll_seconds,
    )


def _parse_cron(expr: str) -> dict:
    parts = expr.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {expr}")
    minute, hour, day, month, dow = parts
    return {
        "minute": minute,
        "hour": hour,
        "day": day,
        "month": month,
        "day_of_week": dow,
    }


def _resolve_tz(tz_name: str, logger: logging.Logger) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("ZoneInfo timezone not found: %s. Falling back to UTC.", tz_name)
        return ZoneInfo("UTC")


def create_scheduler(logger: logging.Logger) -> BackgroundScheduler:
    cfg = load_schedule_config()
    return BackgroundScheduler(timezone=_resolve_tz(cfg.tz_name, logger))


def start_jobs(
    scheduler: BackgroundScheduler,
    *,
    sync: LedgerSync,
    store: TxStore,
    logger: logging.Logger,
) -> None:
    cfg = load_schedule_config()
    tz = _resolve_tz(cfg.tz_name, logger)

    def job_rollover_today() -> None:
        logger.info("Scheduler: rollover_today started")
        snapshot = sync.refresh_today()
        if snapshot is None:
            logger.info("Scheduler: rollover_today skipped, no ledger loaded yet")
            return
        logger.info(
            "Scheduler: rollover_today done. today=%s fees=%s",
            snapshot.today,
            snapshot.today_fee_total,
        )

    def job_poll_store() -> None:
        notified = store.poll()
        if notified:
            logger.info("Scheduler: poll_store picked up external changes for %s owner(s)", notified)

    rollover_trigger = CronTrigger(timezone=tz, **_parse_cron(cfg.rollover_cron))
    scheduler.add_job(
        job_rollover_today,
        rollover_trigger,
        id="rollover_today",
        replace_existing=True,
    )

    scheduler.add_job(
        job_poll_store,
        IntervalTrigger(seconds=cfg.poll_seconds),
        id="poll_store",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started (test_mode=%s). rollover='%s' poll_every=%ss",
        cfg.test_mode,
        cfg.rollover_cron,
        cfg.poll_seconds,
    )
