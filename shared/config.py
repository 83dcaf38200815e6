"""FuoTerm configuration file (TOML) parsing and validation."""
from __future__ import annotations
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from shared.protocol import DEFAULT_TOPICS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    rpc_port: int = 23333
    pubsub_port: int = 23334


@dataclass
class ClientConfig:
    sync_interval_s: float = 5.0
    refresh_interval_ms: int = 1000
    topics: list[str] = field(default_factory=lambda: list(DEFAULT_TOPICS))
    lyric_placeholder: str = "No lyrics"


@dataclass
class LoggingConfig:
    dir: str = "logs"
    level: str = "INFO"

    @property
    def level_no(self) -> int:
        return getattr(logging, self.level.upper(), logging.INFO)


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> list[str]:
        errors = []
        for name in ("rpc_port", "pubsub_port"):
            port = getattr(self.server, name)
            if not (0 < port < 65536):
                errors.append(f"server.{name} must be 1-65535, got {port}")
        if self.server.rpc_port == self.server.pubsub_port:
            errors.append("server.rpc_port and server.pubsub_port must differ")
        if self.client.sync_interval_s < 0:
            errors.append("client.sync_interval_s must be >= 0")
        if self.client.refresh_interval_ms <= 0:
            errors.append("client.refresh_interval_ms must be > 0")
        if not self.client.topics:
            errors.append("client.topics must not be empty")
        if self.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid logging.level: {self.logging.level}")
        return errors


def _parse_server(raw: dict) -> ServerConfig:
    return ServerConfig(
        host=raw.get("host", "127.0.0.1"),
        rpc_port=raw.get("rpc_port", 23333),
        pubsub_port=raw.get("pubsub_port", 23334),
    )


def _parse_client(raw: dict) -> ClientConfig:
    return ClientConfig(
        sync_interval_s=float(raw.get("sync_interval_s", 5.0)),
        refresh_interval_ms=raw.get("refresh_interval_ms", 1000),
        topics=list(raw.get("topics", DEFAULT_TOPICS)),
        lyric_placeholder=raw.get("lyric_placeholder", "No lyrics"),
    )


def load_config(path: Optional[Path] = None) -> Config:
    """Load a fuoterm.toml file; no path means all defaults."""
    if path is None:
        return Config()
    with open(path, "rb") as f:
        data = tomllib.load(f)

    logging_raw = data.get("logging", {})
    return Config(
        server=_parse_server(data.get("server", {})),
        client=_parse_client(data.get("client", {})),
        logging=LoggingConfig(
            dir=logging_raw.get("dir", "logs"),
            level=logging_raw.get("level", "INFO"),
        ),
    )
