"""
Engine configuration.

Defaults reproduce the classic behaviour: Beijing time, table-driven
solar terms, clock time for the hour pillar. Values can be overridden in
code or through LIUYAO_* environment variables.
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from liuyao.errors import ConfigError

SOLAR_TERM_MODES = ("table", "ephemeris")


@dataclass(frozen=True)
class EngineConfig:
    timezone: str = "Asia/Shanghai"
    solar_terms: str = "table"
    longitude: Optional[float] = None  # enables LMT for the hour pillar
    timing_horizon_days: int = 90
    timing_horizon_months: int = 12
    max_relation_items: int = 3
    max_timing_predictions: int = 3
    ephemeris_path: Optional[str] = None

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def validate(self) -> "EngineConfig":
        if self.solar_terms not in SOLAR_TERM_MODES:
            raise ConfigError(
                f"solar_terms must be one of {SOLAR_TERM_MODES}, got {self.solar_terms!r}")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown timezone {self.timezone!r}") from exc
        if self.longitude is not None and not -180.0 <= self.longitude <= 180.0:
            raise ConfigError(f"longitude out of range: {self.longitude}")
        if self.timing_horizon_days < 1 or self.timing_horizon_months < 1:
            raise ConfigError("timing horizons must be positive")
        return self

    def with_overrides(self, **changes) -> "EngineConfig":
        """Copy with the non-None keyword values applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes).validate()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a config from LIUYAO_* variables.

        Args:
            environ: mapping to read from (defaults to os.environ)

        Returns:
            A validated EngineConfig
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get("LIUYAO_TIMEZONE"):
            values["timezone"] = env["LIUYAO_TIMEZONE"]
        if env.get("LIUYAO_SOLAR_TERMS"):
            values["solar_terms"] = env["LIUYAO_SOLAR_TERMS"].lower()
        if env.get("LIUYAO_EPHE_PATH"):
            values["ephemeris_path"] = env["LIUYAO_EPHE_PATH"]
        try:
            if env.get("LIUYAO_LONGITUDE"):
                values["longitude"] = float(env["LIUYAO_LONGITUDE"])
            if env.get("LIUYAO_TIMING_DAYS"):
                values["timing_horizon_days"] = int(env["LIUYAO_TIMING_DAYS"])
            if env.get("LIUYAO_TIMING_MONTHS"):
                values["timing_horizon_months"] = int(env["LIUYAO_TIMING_MONTHS"])
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric LIUYAO_* setting: {exc}") from exc
        return cls(**values).validate()


DEFAULT_CONFIG = EngineConfig()
