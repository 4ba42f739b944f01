from __future__ import annotations

from dataclasses import dataclass
import os


def _get_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _get_upper_str(name: str, default: str) -> str:
    return _get_str(name, default).upper()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ConverterSettings:
    pretty: bool = _get_bool("BPMN_PRETTY", False)
    participant_name: str = _get_str("BPMN_PARTICIPANT_NAME", "")


@dataclass(frozen=True)
class LoggingSettings:
    level: str = _get_upper_str("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class AppSettings:
    converter: ConverterSettings = ConverterSettings()
    logging: LoggingSettings = LoggingSettings()


_SETTINGS = AppSettings()


def get_settings() -> AppSettings:
    return _SETTINGS
