"""Entry point for the ``acephar`` console script.

Startup order matters: logging comes up with defaults first so config
problems are logged, then it is reconfigured from settings.yaml. The
command registry is built and frozen while the bot is constructed, so
a command conflict stops the process before it connects to the gateway.

Key functions:
    main: Async entry point; runs the bot until SIGTERM/SIGINT.
    run: Console-script wrapper around asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .exceptions import ConfigurationError, RegistrationError
from .logging_config import mask_jid, setup_logging

# sysexits.h EX_CONFIG
EXIT_CONFIG_ERROR = 78


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop: asyncio.Event, logger) -> None:
    def request_stop(sig: signal.Signals):
        logger.info("shutdown_signal_received", signal=sig.name)
        stop.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, request_stop, sig)
        except NotImplementedError:
            # No loop signal support (Windows): only SIGINT can be hooked.
            if sig == signal.SIGINT:
                signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(request_stop, signal.SIGINT))


async def main():
    setup_logging()
    logger = structlog.get_logger("acephar")
    logger.info("acephar_starting", version=__version__)

    # Imported after logging so module-level loggers pick up the config
    from .bot import WhatsAppBot
    from .config import get_config

    config = get_config()
    config.validate()
    setup_logging(config)

    try:
        bot = WhatsAppBot(config)
    except RegistrationError as e:
        logger.error("command_registration_failed", error=str(e), command=e.command)
        raise

    logger.info(
        "acephar_configured",
        prefix=bot.prefix,
        commands=len(bot.registry),
        owner=mask_jid(bot.owner_jid or "") or "unset",
        gateway=config.gateway_api_url,
        signature=config.bot_signature_enabled,
    )

    stop = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), stop, logger)

    bot_task = asyncio.create_task(bot.run())
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if bot_task in done:
            # run() only returns on its own if polling stopped; surface errors
            bot_task.result()
    finally:
        for task in (bot_task, stop_task):
            task.cancel()
        await asyncio.gather(bot_task, stop_task, return_exceptions=True)
        await bot.stop()
        logger.info("acephar_stopped")


def run():
    """Run the bot; exit with EX_CONFIG on configuration or command errors."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except (ConfigurationError, RegistrationError) as e:
        print(f"acephar: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)


if __name__ == "__main__":
    run()
