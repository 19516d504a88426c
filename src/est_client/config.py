# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Configuration management for the EST CA client."""

from typing import Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# The CA only accepts this suite; no other suite is ever offered.
DEFAULT_CIPHER_SUITE = "PSK-AES256-CBC-SHA"

DEFAULT_RESPONSE_CEILING = 2048


class ClientSettings(BaseSettings):
    """Client settings loaded from environment variables (EST_CLIENT_*)."""

    model_config = SettingsConfigDict(
        env_prefix="EST_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # CA endpoint (CLI defaults)
    host: str = "127.0.0.1"
    port: int = Field(default=8443, ge=1, le=65535)

    # Secure transport
    cipher_suite: str = DEFAULT_CIPHER_SUITE
    psk_encoding: Literal["utf-8", "hex"] = "utf-8"

    # Session limits
    response_ceiling: int = Field(default=DEFAULT_RESPONSE_CEILING, gt=0)
    connect_timeout: Optional[float] = Field(default=30.0, gt=0)
    io_timeout: Optional[float] = Field(default=30.0, gt=0)

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = ClientSettings()
