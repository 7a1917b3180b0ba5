import argparse
import logging
import time

from . import __version__
from .config import load_settings
from .logging_setup import setup_logging


def mask(value: str | None, show: int = 4) -> str:
    if not value:
        return "None"
    if len(value) <= show:
        return "*" * len(value)
    return value[:show] + "*" * (len(value) - show)


def main() -> int:
    parser = argparse.ArgumentParser(prog="agent-cashbook")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "command",
        nargs="?",
        default="health",
        choices=["health", "status-env", "whoami", "types", "add", "ledger", "summary", "watch"],
        help="Command to run",
    )

    parser.add_argument("--date", type=str, default=None, help="Business date YYYY-MM-DD (add). Default: today")
    parser.add_argument("--time", type=str, default=None, help="Local time HH:MM (add). Default: now")
    parser.add_argument("--type", dest="tx_type", type=str, default=None, help="Transaction type (add)")
    parser.add_argument("--amount", type=str, default="", help="Principal amount (add)")
    parser.add_argument("--fee", type=str, default="", help="Administrative fee (add)")
    parser.add_argument("--reference", type=str, default=None, help="External reference, e.g. receipt no. (add)")
    parser.add_argument("--description", type=str, default=None, help="Free-text note (add)")
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Show only the last N rows (ledger / watch)",
    )

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return 0

    settings = load_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger(__name__)

    if args.command == "health":
        logger.info("Application started successfully.")
        print("ok")
        return 0

    if args.command == "status-env":
        print("CASHBOOK_DATA_DIR =", settings.data_dir)
        print("CASHBOOK_OWNER_ID =", mask(settings.owner_id))
        print("CASHBOOK_TZ =", settings.business_tz)
        print("LOG_LEVEL =", settings.log_level)
        return 0

    if args.command == "types":
        from .render import render_types

        print(render_types())
        return 0

    from .app import LedgerApp
    from .render import render_snapshot, render_submit_result, render_summary, sync_error_message

    if args.command == "whoami":
        app = LedgerApp(settings)
        print("owner_id =", app.resolve_owner())
        return 0

    if args.command == "add":
        app = LedgerApp(settings)
        app.start()
        try:
            result = app.submit_transaction(
                {
                    "date": args.date or app.clock.today().isoformat(),
                    "time": args.time or app.clock.current_time(),
                    "type": args.tx_type,
                    "amount": args.amount,
                    "fee": args.fee,
                    "reference": args.reference,
                    "description": args.description,
                }
            )
            print(render_submit_result(result))
            if result.ok:
                print(render_snapshot(app.current_snapshot(), limit=5))
        finally:
            app.close()
        return 0 if result.ok else 1

    if args.command in ("ledger", "summary"):
        from .ledger.compute import compute_facts

        app = LedgerApp(settings)
        app.start()
        try:
            if app.sync.last_error is not None:
                print(sync_error_message(app.sync.last_error))
                return 1
            snapshot = app.current_snapshot()
        finally:
            app.close()

        if args.command == "ledger":
            print(render_snapshot(snapshot, limit=args.limit))
        else:
            print(render_summary(compute_facts(snapshot)))
        return 0

    if args.command == "watch":
        from .scheduler import create_scheduler, start_jobs

        def on_snapshot(snapshot) -> None:
            print(render_snapshot(snapshot, limit=args.limit or 20))
            print()

        def on_error(err: Exception) -> None:
            print(sync_error_message(err))

        app = LedgerApp(settings, on_snapshot=on_snapshot, on_error=on_error)
        scheduler = create_scheduler(logger)
        app.start()
        try:
            start_jobs(scheduler, sync=app.sync, store=app.store, logger=logger)
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down.")
        finally:
            if scheduler.running:
                scheduler.shutdown(wait=False)
            app.close()
        return 0

    return 1
