from __future__ import annotations

# Plan:
# 1) Load config, configure logging and open the bot's shared HTTP client.
# 2) Run the push job once (--once) or on every interval boundary until stopped.
# 3) Close the bot cleanly on exit.

import argparse
import asyncio
import logging
from pathlib import Path
import signal

from .bot import NoticeBot
from .config import load_config
from .scheduler import IntervalScheduler


async def main() -> None:
    args = _parse_args()
    if args.init_config:
        _init_config(Path(args.config))
        return
    config = load_config(args.config)
    _configure_logging(config.settings.log_level, args.verbose)
    logger = logging.getLogger(__name__)

    bot = NoticeBot(config)
    await bot.start()
    try:
        job = bot.push_new_notices_job()
        if args.once:
            await job.run()
            return
        if not config.jobs.push_new_notices:
            logger.warning("jobs.push_new_notices is disabled; nothing to do")
            return

        scheduler = IntervalScheduler(job.run, config.jobs.interval_seconds, name="PushNewNotices")
        _install_signal_handlers(scheduler)
        logger.info("Pushing new notices every %ss", config.jobs.interval_seconds)
        await scheduler.run_forever()
    finally:
        await bot.stop()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Racó notice push bot")
    parser.add_argument("--config", default="./config.yaml")
    parser.add_argument("--once", action="store_true", help="Run the push job once and exit")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--init-config", action="store_true", help="Create a config.yaml template and exit")
    return parser.parse_args()


def _configure_logging(level_name: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    # httpx logs every request URL at INFO, which includes the bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _init_config(target: Path) -> None:
    if target.exists():
        raise SystemExit(f"Config already exists at {target}")
    root = Path(__file__).resolve().parents[1]
    template = root / "config.example.yaml"
    if not template.exists():
        raise SystemExit("config.example.yaml not found")
    target.write_text(template.read_text(encoding="utf-8"), encoding="utf-8")
    print(f"Wrote config template to {target}")


def _install_signal_handlers(scheduler: IntervalScheduler) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # not available on Windows event loops
            pass


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
