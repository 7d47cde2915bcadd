import logging

from infrastructure.config import load_settings
from infrastructure.logging import setup_logging
from infrastructure.wiring import build_stores
from interfaces.discord.handlers import create_discord_bot

logger = logging.getLogger(__name__)


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_dir, settings.log_level)

    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    stores, identity_repo = build_stores(settings)

    bot = create_discord_bot(stores, identity_repo, poll_interval=settings.poll_interval_seconds)
    logger.info("Starting Discord bot")
    # Our own root logging setup is already in place.
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
