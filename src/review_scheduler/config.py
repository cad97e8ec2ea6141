from __future__ import annotations

import logging
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
DEFAULT_TIMEZONE = "UTC"
MAX_INTERVAL_DAYS = 36500


class Settings(BaseSettings):
    """Scheduler settings loaded from environment variables.

    環境変数から読み込まれるスケジューラ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - srs_*: SM-2 の定数（初期イーズ、下限、初回/2回目の間隔、タイムゾーン）
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structlog output / ログレベル",
    )

    # --- SRS（SM-2）パラメータ ---
    srs_default_ease_factor: float = Field(
        default=DEFAULT_EASE_FACTOR,
        description="Ease factor of a never-reviewed card / 新規カードの初期イーズ",
    )
    srs_min_ease_factor: float = Field(
        default=MIN_EASE_FACTOR,
        description="Lower bound of the ease factor / イーズの下限",
    )
    srs_first_interval_days: int = Field(
        default=1,
        description="Interval after the first successful review (days) / 初回成功後の間隔(日)",
    )
    srs_second_interval_days: int = Field(
        default=6,
        description="Interval after the second consecutive success (days) / 2回連続成功後の間隔(日)",
    )
    srs_lapse_interval_days: int = Field(
        default=1,
        description="Interval after a lapse (days) / 失敗時の間隔(日)",
    )
    srs_max_interval_days: int = Field(
        default=MAX_INTERVAL_DAYS,
        description="Upper bound of any interval (days) / 間隔の上限(日)",
    )
    srs_timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA time zone for calendar-day arithmetic / 日付加算に使うタイムゾーン",
    )

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    # Pydantic v2 settings config
    # - env_file: .env を読み込む
    # - extra: .env に存在する未使用キーを無視
    # - case_sensitive: 環境変数キーの大小文字を区別しない
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("srs_timezone", mode="before")
    @classmethod
    def _normalise_timezone(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or DEFAULT_TIMEZONE
        return value

    @model_validator(mode="after")
    def _validate_srs_parameters(self) -> "Settings":
        """Validate SM-2 constants, or repair them when strict mode is off.

        STRICT_MODE=true のときは不正値を ValueError で即座に拒否する。
        テスト等で strict_mode=False の場合は下限へ丸めて継続する。
        """

        problems: list[str] = []

        if self.srs_min_ease_factor <= 0:
            problems.append("SRS_MIN_EASE_FACTOR must be positive")
            if not self.strict_mode:
                self.srs_min_ease_factor = MIN_EASE_FACTOR

        if self.srs_default_ease_factor < self.srs_min_ease_factor:
            problems.append("SRS_DEFAULT_EASE_FACTOR must not be below SRS_MIN_EASE_FACTOR")
            if not self.strict_mode:
                self.srs_default_ease_factor = self.srs_min_ease_factor

        if self.srs_max_interval_days < 1:
            problems.append("SRS_MAX_INTERVAL_DAYS must be at least 1")
            if not self.strict_mode:
                self.srs_max_interval_days = MAX_INTERVAL_DAYS

        for name in ("srs_first_interval_days", "srs_second_interval_days", "srs_lapse_interval_days"):
            if getattr(self, name) < 1:
                problems.append(f"{name.upper()} must be at least 1")
                if not self.strict_mode:
                    setattr(self, name, 1)
            elif getattr(self, name) > self.srs_max_interval_days:
                problems.append(f"{name.upper()} must not exceed SRS_MAX_INTERVAL_DAYS")
                if not self.strict_mode:
                    setattr(self, name, self.srs_max_interval_days)

        try:
            ZoneInfo(self.srs_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            problems.append(f"SRS_TIMEZONE {self.srs_timezone!r} is not a known time zone")
            if not self.strict_mode:
                self.srs_timezone = DEFAULT_TIMEZONE

        if not isinstance(logging.getLevelName(self.log_level), int):
            problems.append(f"LOG_LEVEL {self.log_level!r} is not a logging level")
            if not self.strict_mode:
                self.log_level = "INFO"

        if problems and self.strict_mode:
            raise ValueError("; ".join(problems))
        return self


@dataclass(frozen=True)
class SchedulerParams:
    """SM-2 constants handed to the scheduler explicitly."""

    default_ease_factor: float = DEFAULT_EASE_FACTOR
    min_ease_factor: float = MIN_EASE_FACTOR
    first_interval_days: int = 1
    second_interval_days: int = 6
    lapse_interval_days: int = 1
    max_interval_days: int = MAX_INTERVAL_DAYS
    timezone: str = DEFAULT_TIMEZONE

    def __post_init__(self) -> None:
        if self.min_ease_factor <= 0:
            raise ValueError(f"min_ease_factor must be positive, got {self.min_ease_factor!r}")
        if self.default_ease_factor < self.min_ease_factor:
            raise ValueError(
                f"default_ease_factor {self.default_ease_factor!r} is below min_ease_factor {self.min_ease_factor!r}"
            )
        if self.max_interval_days < 1:
            raise ValueError(f"max_interval_days must be at least 1, got {self.max_interval_days!r}")
        for name in ("first_interval_days", "second_interval_days", "lapse_interval_days"):
            value = getattr(self, name)
            if not 1 <= value <= self.max_interval_days:
                raise ValueError(f"{name} must be between 1 and max_interval_days, got {value!r}")

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "SchedulerParams":
        source = source or settings
        return cls(
            default_ease_factor=source.srs_default_ease_factor,
            min_ease_factor=source.srs_min_ease_factor,
            first_interval_days=source.srs_first_interval_days,
            second_interval_days=source.srs_second_interval_days,
            lapse_interval_days=source.srs_lapse_interval_days,
            max_interval_days=source.srs_max_interval_days,
            timezone=source.srs_timezone,
        )

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


settings = Settings()
