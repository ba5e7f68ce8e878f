"""
Centralized application configuration.

All settings are read from environment variables prefixed with CHESS_ (or a .env.chess file).
Every setting has a default, so the application starts without any configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHESS_", env_file=".env.chess", env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # New games
    default_player_color: str = "white"
    default_mode: str = "local"
    default_pass_and_play: bool = False


@lru_cache
def get_settings() -> Settings:
    """Read the environment once, share the result."""
    return Settings()
