from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml


@dataclass(frozen=True)
class Settings:
    """
    Назначение:
        Настройки окружения запуска (не job): куда писать логи и отчёты,
        уровень логирования, кодировка входных файлов.
    """

    log_dir: str = "./logs"
    report_dir: str = "./reports"
    log_level: str = "INFO"
    report_items_limit: int = 200
    encoding: str = "utf-8-sig"


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


ENV_PREFIX = "CSVPIPE_"
ENV_VARS = {f.name: ENV_PREFIX + f.name.upper() for f in fields(Settings)}


def _config_layer(config_path: str | None) -> dict[str, Any]:
    if not config_path:
        return {}
    path = Path(config_path)
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, Mapping):
        return {}
    return {name: data[name] for name in ENV_VARS if data.get(name) is not None}


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for name, var in ENV_VARS.items():
        value = (os.getenv(var) or "").strip()
        if value:
            layer[name] = value
    return layer


def _coerce(name: str, value: Any) -> Any:
    if name == "report_items_limit":
        try:
            limit = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid integer value for {name}: {value!r}") from None
        if limit < 0:
            raise ValueError(f"{name} must be >= 0, got {limit}")
        return limit
    return str(value)


def load_settings(config_path: str | None, cli_overrides: Mapping[str, Any]) -> LoadedSettings:
    """
    Назначение:
        Собрать Settings из слоёв с приоритетом CLI > ENV (CSVPIPE_*) > config.yml > defaults.

    Выходные данные:
        LoadedSettings: sources_used перечисляет непустые слои в порядке применения.

    Ошибки:
        ValueError: значение не приводится к типу поля.
    """
    layers = [
        ("config", _config_layer(config_path)),
        ("env", _env_layer()),
        ("cli", {k: v for k, v in cli_overrides.items() if v is not None and k in ENV_VARS}),
    ]

    merged: dict[str, Any] = {}
    sources: list[str] = []
    for source, layer in layers:
        if layer:
            sources.append(source)
            merged.update(layer)

    values = {name: _coerce(name, value) for name, value in merged.items()}
    return LoadedSettings(settings=Settings(**values), sources_used=sources)


__all__ = ["Settings", "LoadedSettings", "ENV_VARS", "load_settings"]
