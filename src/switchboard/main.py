"""Entry point: runs a small demo bot on the configured platform."""

import asyncio
import logging
import signal
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config.settings import settings
from switchboard.bot import Bot, create_bot
from switchboard.models.event import ReactionEvent
from switchboard.models.message import UnifiedMessage
from switchboard.models.result import Err

# ── Logging ────────────────────────────────────────────────


def setup_logging() -> None:
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh = RotatingFileHandler(
        log_dir / "switchboard.log",
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    fh.setFormatter(formatter)
    fh.setLevel(level)

    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    ch.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(fh)
    root.addHandler(ch)

    # Quiet noisy loggers
    for name in ("httpx", "httpcore", "telegram", "slack_bolt", "slack_sdk", "aiohttp.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ── Wiring ─────────────────────────────────────────────────


def build_bot() -> Bot:
    """Register the adapter for ``settings.platform`` and wrap it in a Bot."""
    if settings.platform == "slack":
        from switchboard.platforms.slack_bot import SlackConfig, SlackCredentials
        from switchboard.platforms.slack_bot import register as register_slack

        register_slack(config=SlackConfig.from_settings(settings))
        credentials = SlackCredentials(
            bot_token=settings.slack_bot_token,
            app_token=settings.slack_app_token or None,
            signing_secret=settings.slack_signing_secret or None,
        )
    elif settings.platform == "telegram":
        from switchboard.platforms.telegram_bot import TelegramCredentials
        from switchboard.platforms.telegram_bot import register as register_telegram

        register_telegram()
        credentials = TelegramCredentials(token=settings.telegram_bot_token)
    else:
        credentials = None

    # Unknown platforms fall through to AdapterNotFoundError here.
    return create_bot(settings.platform, credentials)


def install_demo_handlers(bot: Bot) -> None:
    logger = logging.getLogger(__name__)

    @bot.on_message
    async def ping(message: UnifiedMessage) -> None:
        if "ping" not in message.text.lower():
            return
        result = await bot.reply(message, "pong!")
        if isinstance(result, Err):
            logger.warning("Reply failed: %s", result.error)
            return
        await bot.add_reaction(message, "👍")

    @bot.on_reaction
    async def log_reaction(event: ReactionEvent) -> None:
        logger.info(
            "Reaction %s %s on %s by %s",
            event.emoji,
            event.action,
            event.message_id,
            event.user_id,
        )


# ── Main ───────────────────────────────────────────────────


async def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting switchboard demo on %s...", settings.platform)

    bot = build_bot()
    install_demo_handlers(bot)
    await bot.start()

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    logger.info("Bot is running! Press Ctrl+C to stop.")
    await stop_event.wait()

    logger.info("Shutting down...")
    await bot.stop()
    logger.info("Goodbye!")


if __name__ == "__main__":
    asyncio.run(main())
