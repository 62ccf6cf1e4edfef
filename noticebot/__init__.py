"""Push newly published Racó notices to Telegram subscribers."""

__version__ = "0.1.0"
