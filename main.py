# main.py
from __future__ import annotations

import asyncio
import signal
import sys

from mmbot.config import load_config
from mmbot.controller import ControllerCfg, OrderController
from mmbot.errors import TransportError
from mmbot.logger import setup_logger
from mmbot.marketapi import MarketApi
from mmbot.scheduler import AsyncioScheduler


async def main(cfg_path: str = "config.yaml") -> int:
    cfg = load_config(cfg_path)
    log = setup_logger(cfg.env.log_dir, cfg.env.log_level)

    api = MarketApi(cfg.market_api)
    log.info(f"[MAIN] order book source {api.url}")

    scheduler = AsyncioScheduler(log=log)
    bot = OrderController(
        api.get_order_book,
        cfg.bot.start_balance,
        cfg=ControllerCfg(
            refresh_ms=cfg.bot.refresh_ms,
            report_ms=cfg.bot.report_ms,
            reserved_pct=cfg.bot.reserved_pct,
        ),
        scheduler=scheduler,
        log=log,
    )

    try:
        await bot.start()
    except TransportError as e:
        log.error(f"[MAIN] could not fetch initial order book: {e}")
        return 1

    stop_evt = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_evt.set)

    try:
        await stop_evt.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        bot.stop()
        await scheduler.join()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(*sys.argv[1:2])))
