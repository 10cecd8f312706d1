# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Dashboard.

This module is responsible for:
- loading the main application configuration from a TOML file,
- resolving the AI insight service credentials from the environment,
- exposing typed dataclasses used by the rest of the application.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

DEFAULT_CONFIG_FILE = "smb_dashboard_config.toml"


@dataclass(frozen=True)
class InsightsConfig:
    """
    Settings of the AI insight service.

    The API key itself is never stored in the TOML file: ``api_key_env``
    names the environment variable that holds it.
    """

    api_key_env: str = "OPENAI_API_KEY"
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    alerts_temperature: float = 0.8
    forecast_temperature: float = 0.5
    timeout_seconds: float = 60.0
    debounce_seconds: float = 1.0
    alert_window_days: int = 30
    max_alerts: int = 10

    @property
    def api_key(self) -> Optional[str]:
        """API key read from the environment, or None if unset/empty."""
        value = os.environ.get(self.api_key_env, "").strip()
        return value or None

    @property
    def enabled(self) -> bool:
        return self.api_key is not None


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Dashboard.

    This aggregates:
    - display options (currency, decimals, table/CSV rendering),
    - inventory and metrics parameters,
    - the AI insight service settings,
    - optional data sources (CSV seed directory, built-in sample data),
    - the export output directory.
    """

    currency: str = "USD"
    decimals: int = 2
    display_mode: str = "table"
    low_stock_threshold: int = 20
    marketing_category: str = "Marketing"
    insights: InsightsConfig = field(default_factory=InsightsConfig)
    data_dir: Optional[Path] = None
    load_sample_data: bool = False
    output_dir: Path = Path("data/output")


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping if missing/invalid."""
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _as_int(section: Mapping[str, Any], key: str, default: int, where: str) -> int:
    raw_value = section.get(key)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc


def _as_float(
    section: Mapping[str, Any], key: str, default: float, where: str
) -> float:
    raw_value = section.get(key)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected a number."
        ) from exc


def _parse_insights(section: Mapping[str, Any]) -> InsightsConfig:
    """
    Parse the [insights] table.

    Raises:
        ValueError: if a numeric setting is invalid or out of range.
    """
    defaults = InsightsConfig()

    base_url_raw = section.get("base_url")
    base_url = str(base_url_raw) if base_url_raw else None

    insights = InsightsConfig(
        api_key_env=str(section.get("api_key_env") or defaults.api_key_env),
        model=str(section.get("model") or defaults.model),
        base_url=base_url,
        alerts_temperature=_as_float(
            section, "alerts_temperature", defaults.alerts_temperature, "insights"
        ),
        forecast_temperature=_as_float(
            section, "forecast_temperature", defaults.forecast_temperature, "insights"
        ),
        timeout_seconds=_as_float(
            section, "timeout_seconds", defaults.timeout_seconds, "insights"
        ),
        debounce_seconds=_as_float(
            section, "debounce_seconds", defaults.debounce_seconds, "insights"
        ),
        alert_window_days=_as_int(
            section, "alert_window_days", defaults.alert_window_days, "insights"
        ),
        max_alerts=_as_int(section, "max_alerts", defaults.max_alerts, "insights"),
    )

    if insights.debounce_seconds < 0:
        raise ValueError("'insights.debounce_seconds' cannot be negative.")
    if insights.alert_window_days < 1:
        raise ValueError("'insights.alert_window_days' must be at least 1.")
    if insights.max_alerts < 1:
        raise ValueError("'insights.max_alerts' must be at least 1.")

    return insights


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Dashboard application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [display]
        currency, decimals and display mode ("table", "csv" or "both").

    [inventory]
        low_stock_threshold: quantity below which a product is "Low Stock".

    [metrics]
        marketing_category: expense category counted as acquisition spend
        in CAC.

    [insights]
        AI insight service settings: api_key_env, model, base_url,
        alerts_temperature, forecast_temperature, timeout_seconds,
        debounce_seconds, alert_window_days, max_alerts.

    [data]
        dir: optional directory of CSV files used to seed the session
        (products.csv, sales.csv, expenses.csv, customers.csv, goals.csv).
        sample: load the built-in demo dataset when true.

    [export]
        output_dir: directory where CSV exports are written.

    Notes
    -----
    - Every section is optional; missing values fall back to defaults.
    - All file paths in the TOML are resolved relative to the directory of
      the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``smb_dashboard_config.toml`` in the current working directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Display options
    display_section = _section(raw, "display")
    currency = str(display_section.get("currency") or "USD")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in {"table", "csv", "both"}:
        raise ValueError(
            f"Invalid display mode {display_mode!r}, expected table, csv or both."
        )
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    # 2) Inventory & metrics
    inventory_section = _section(raw, "inventory")
    low_stock_threshold = _as_int(
        inventory_section, "low_stock_threshold", 20, "inventory"
    )
    if low_stock_threshold < 1:
        raise ValueError("'inventory.low_stock_threshold' must be at least 1.")

    metrics_section = _section(raw, "metrics")
    marketing_category = str(metrics_section.get("marketing_category") or "Marketing")

    # 3) Insights
    insights = _parse_insights(_section(raw, "insights"))

    # 4) Data sources
    data_section = _section(raw, "data")
    data_dir_raw = data_section.get("dir")
    data_dir = (base_dir / str(data_dir_raw)).resolve() if data_dir_raw else None
    load_sample_data = bool(data_section.get("sample", False))

    # 5) Export
    export_section = _section(raw, "export")
    output_dir_raw = export_section.get("output_dir") or "data/output"
    output_dir = (base_dir / str(output_dir_raw)).resolve()

    return AppConfig(
        currency=currency,
        decimals=decimals,
        display_mode=display_mode,
        low_stock_threshold=low_stock_threshold,
        marketing_category=marketing_category,
        insights=insights,
        data_dir=data_dir,
        load_sample_data=load_sample_data,
        output_dir=output_dir,
    )
