"""
Configuration management for the book page scraper.
Handles environment variables and application settings.
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings (HTTP surface)
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "console")  # json or console

    # Request settings
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))
    # The book site rejects default client identifiers
    USER_AGENT: str = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    )
    ACCEPT_LANGUAGE: str = os.getenv("ACCEPT_LANGUAGE", "en-US,en;q=0.5")

    # Locale-specific noise tokens removed from series names
    SERIES_IGNORE_WORDS_RAW: Optional[str] = os.getenv("SERIES_IGNORE_WORDS")

    @classmethod
    def series_ignore_words(cls) -> List[str]:
        """Return the configured series ignore-words (defaults to the Bengali 'volume')."""
        if cls.SERIES_IGNORE_WORDS_RAW is None:
            return ["ভলিউম"]
        return [w.strip() for w in cls.SERIES_IGNORE_WORDS_RAW.split(",") if w.strip()]


config = Config()
