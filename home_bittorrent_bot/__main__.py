"""Allow running the bot with ``python -m home_bittorrent_bot``."""

from home_bittorrent_bot.bot.main import main

if __name__ == "__main__":
    main()
