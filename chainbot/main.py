"""Main entry point for chainbot.

Initializes logging in two phases (defaults then config-driven),
creates a CommandBot on the console transport, and runs until stdin
closes or SIGTERM/SIGINT arrives, then drains in-flight chains.

Key functions:
    main: Async entry point.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from .logging_config import setup_logging


async def main():
    """Main async entry point."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("chainbot")

    from . import __version__
    logger.info("chainbot_starting", version=__version__)

    from .bot import CommandBot
    from .config import get_config
    from .console import ConsoleTransport

    config = get_config()
    config.validate()

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    transport = ConsoleTransport()
    bot = CommandBot.from_config(transport, config)

    @bot.command("echo", description="Repeats its arguments.", usage="echo <text...>")
    async def echo(event, *words):
        return " ".join(words)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    reader = asyncio.create_task(transport.read_messages(bot.on_message_received))
    stopper = asyncio.create_task(shutdown_event.wait())
    try:
        await asyncio.wait({reader, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (reader, stopper):
            task.cancel()
        await asyncio.gather(reader, stopper, return_exceptions=True)
        await bot.stop()
        logger.info("chainbot_stopped")


def run():
    """Synchronous entry point for the ``chainbot`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
