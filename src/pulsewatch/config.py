from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


ENV_PREFIX = "PULSEWATCH_"


@dataclass(frozen=True)
class MonitorConfig:
    """
    Tunable timing and connection constants.

    All durations are in seconds.
    """
    sample_interval: float = 0.1          # simulator tick (10 Hz)
    scoring_tick: float = 5.0             # how often the monitor asks for insights
    scoring_interval: float = 5.0         # engine cooldown between analyses
    max_reconnect_attempts: int = 5
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 10.0
    scan_timeout: float = 10.0
    connect_timeout: float = 10.0
    anomaly_interval: float = 15.0
    anomaly_duration: float = 5.0
    device_address: Optional[str] = None
    log_level: str = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


def get_config(env_file: Optional[str] = None) -> MonitorConfig:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = env_file or os.getenv(ENV_PREFIX + "ENV_FILE", ".env")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    defaults = MonitorConfig()
    return MonitorConfig(
        sample_interval=_env_float("SAMPLE_INTERVAL", defaults.sample_interval),
        scoring_tick=_env_float("SCORING_TICK", defaults.scoring_tick),
        scoring_interval=_env_float("SCORING_INTERVAL", defaults.scoring_interval),
        max_reconnect_attempts=_env_int("MAX_RECONNECT_ATTEMPTS", defaults.max_reconnect_attempts),
        reconnect_initial_delay=_env_float("RECONNECT_INITIAL_DELAY", defaults.reconnect_initial_delay),
        reconnect_max_delay=_env_float("RECONNECT_MAX_DELAY", defaults.reconnect_max_delay),
        scan_timeout=_env_float("SCAN_TIMEOUT", defaults.scan_timeout),
        connect_timeout=_env_float("CONNECT_TIMEOUT", defaults.connect_timeout),
        anomaly_interval=_env_float("ANOMALY_INTERVAL", defaults.anomaly_interval),
        anomaly_duration=_env_float("ANOMALY_DURATION", defaults.anomaly_duration),
        device_address=os.getenv(ENV_PREFIX + "DEVICE_ADDRESS") or None,
        log_level=os.getenv(ENV_PREFIX + "LOG_LEVEL", defaults.log_level),
    )
