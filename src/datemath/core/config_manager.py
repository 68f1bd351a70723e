"""Configuration Management for datemath

Defines the immutable option bag consumed by the evaluator and a manager that
builds it from hierarchical YAML files with environment overrides.
"""

import calendar
import os
import logging
import threading
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Union

import yaml
from dateutil import parser as date_parser
from dateutil.tz import gettz, tzutc
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .error_handler import ConfigurationError


WEEKDAY_NAMES = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}


def weekday_index(value: Union[int, str]) -> int:
    """Convert a weekday name or number (0=Monday) to its number."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid weekday: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= 6:
            raise ValueError(f"Weekday must be between 0 (Monday) and 6 (Sunday), got {value}")
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key.isdigit():
            return weekday_index(int(key))
        if key in WEEKDAY_NAMES:
            return WEEKDAY_NAMES[key]
    raise ValueError(f"Invalid weekday: {value!r}")


def is_weekday(moment: datetime) -> bool:
    """Default business day predicate: Monday to Friday."""
    return moment.weekday() < 5


class BusinessCalendar:
    """Business day predicate built from working weekdays and holiday dates."""

    def __init__(self, weekdays: Iterable[Union[int, str]] = range(5),
                 holidays: Iterable[Union[date, str]] = ()):
        self.weekdays: FrozenSet[int] = frozenset(weekday_index(day) for day in weekdays)
        self.holidays: FrozenSet[date] = frozenset(
            date_parser.isoparse(day).date() if isinstance(day, str) else day
            for day in holidays
        )

    def __call__(self, moment: datetime) -> bool:
        return moment.weekday() in self.weekdays and moment.date() not in self.holidays

    def __repr__(self) -> str:
        return f"BusinessCalendar(weekdays={sorted(self.weekdays)}, holidays={sorted(self.holidays)})"


class FiscalYearStart(BaseModel):
    """Month, day and time of day on which the fiscal year begins."""
    model_config = ConfigDict(frozen=True)

    month: int = Field(default=1, ge=1, le=12)
    day: int = Field(default=1, ge=1, le=31)
    hour: int = Field(default=0, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    second: int = Field(default=0, ge=0, le=59)

    @field_validator('day')
    @classmethod
    def validate_day(cls, v, info):
        """Day must exist in the month of some (possibly leap) year."""
        month = info.data.get('month', 1)
        # 2000 is a leap year, so Feb 29 is accepted
        longest = calendar.monthrange(2000, month)[1]
        if v > longest:
            raise ValueError(f"Day {v} does not exist in month {month}")
        return v

    @classmethod
    def coerce(cls, value: Any) -> Optional['FiscalYearStart']:
        """Build from a model, mapping, ``MM-DD`` string, (month, day) tuple, or date."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, datetime):
            return cls(month=value.month, day=value.day, hour=value.hour,
                       minute=value.minute, second=value.second)
        if isinstance(value, date):
            return cls(month=value.month, day=value.day)
        if isinstance(value, dict):
            return cls(**value)
        if isinstance(value, (tuple, list)):
            return cls(**dict(zip(('month', 'day', 'hour', 'minute', 'second'), value)))
        if isinstance(value, str):
            date_part, _, time_part = value.strip().partition('T')
            try:
                month, day = (int(part) for part in date_part.split('-'))
                clock = [int(part) for part in time_part.split(':')] if time_part else []
            except ValueError:
                raise ValueError(f"Fiscal year start must look like MM-DD[THH:MM[:SS]], got {value!r}")
            return cls(**dict(zip(('month', 'day', 'hour', 'minute', 'second'), [month, day] + clock)))
        raise ValueError(f"Unsupported fiscal year start: {value!r}")

    @property
    def is_calendar_year(self) -> bool:
        return (self.month, self.day, self.hour, self.minute, self.second) == (1, 1, 0, 0, 0)


class EvaluationConfig(BaseModel):
    """Options consumed by the evaluator. Every field has a default."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    now: Optional[datetime] = Field(default=None)
    timezone: tzinfo = Field(default_factory=tzutc)
    round_up: bool = Field(default=False)
    business_day: Callable[[datetime], bool] = Field(default=is_weekday)
    fiscal_year_start: Optional[FiscalYearStart] = Field(default=None)
    start_of_week: int = Field(default=0, ge=0, le=6)

    @field_validator('now', mode='before')
    @classmethod
    def validate_now(cls, v):
        """Accept ISO-8601 strings for the reference instant"""
        if isinstance(v, str):
            return date_parser.isoparse(v)
        return v

    @field_validator('timezone', mode='before')
    @classmethod
    def validate_timezone(cls, v):
        """Resolve timezone names through the tz database"""
        if v is None:
            return tzutc()
        if isinstance(v, str):
            zone = tzutc() if v.upper() in ('UTC', 'Z') else gettz(v)
            if zone is None:
                raise ValueError(f"Unknown timezone: {v}")
            return zone
        return v

    @field_validator('business_day', mode='before')
    @classmethod
    def validate_business_day(cls, v):
        """None restores the Monday to Friday default"""
        return is_weekday if v is None else v

    @field_validator('fiscal_year_start', mode='before')
    @classmethod
    def validate_fiscal_year_start(cls, v):
        """Coerce the accepted fiscal anchor spellings"""
        try:
            return FiscalYearStart.coerce(v)
        except ValidationError as e:
            raise ValueError(f"Invalid fiscal year start {v!r}: {e.errors()[0]['msg']}")

    @field_validator('start_of_week', mode='before')
    @classmethod
    def validate_start_of_week(cls, v):
        """Accept weekday names as well as numbers"""
        return weekday_index(v)

    def reference_time(self) -> datetime:
        """Return the instant ``now`` resolves to, in the evaluation timezone.

        A naive ``now`` is taken to be wall-clock time in the evaluation timezone.
        """
        if self.now is None:
            return datetime.now(tz=self.timezone)
        if self.now.tzinfo is None:
            return self.now.replace(tzinfo=self.timezone)
        return self.now.astimezone(self.timezone)

    def with_overrides(self, **overrides) -> 'EvaluationConfig':
        """Return a validated copy with some fields replaced."""
        if not overrides:
            return self
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(overrides)
        try:
            return type(self)(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid evaluation configuration: {e}")


class ConfigManager:
    """Loads default evaluation settings from YAML files and the environment.

    Files are merged in order ``default_config.yaml``, ``<environment>.yaml``,
    ``local.yaml``; ``DATEMATH_<KEY>`` environment variables override them.
    """

    ENV_PREFIX = "DATEMATH_"
    FILE_KEYS = {'timezone', 'round_up', 'fiscal_year_start', 'start_of_week',
                 'business_days', 'holidays', 'now'}

    def __init__(self, config_path: Optional[Path] = None, environment: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional directory holding configuration files
            environment: Environment name selecting ``<environment>.yaml``
        """
        self.config_base_path = Path(config_path) if config_path else self._get_default_config_path()
        self.environment = environment or os.getenv('DATEMATH_ENV', 'development')
        self._config: Optional[EvaluationConfig] = None
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

        self.config_files = self._get_config_files()

    def _get_default_config_path(self) -> Path:
        config_locations = [
            Path("config"),
            Path.home() / ".datemath",
            Path("/etc/datemath"),
        ]

        for location in config_locations:
            if location.exists() and location.is_dir():
                return location

        return Path("config")

    def _get_config_files(self) -> Dict[str, Path]:
        base_dir = self.config_base_path

        return {
            'default': base_dir / 'default_config.yaml',
            'environment': base_dir / f'{self.environment}.yaml',
            'local': base_dir / 'local.yaml',
        }

    def load_config(self) -> EvaluationConfig:
        """Load and validate configuration with hierarchical overrides.

        Returns:
            Validated evaluation configuration

        Raises:
            ConfigurationError: If a file is unreadable or a value is invalid
        """
        with self._lock:
            if self._config:
                return self._config

            config_data: Dict[str, Any] = {}

            for config_type, config_file in self.config_files.items():
                if config_file.exists():
                    self.logger.info(f"Loading {config_type} config from {config_file}")
                    config_data.update(self._load_yaml_file(config_file))

            env_overrides = self._get_env_overrides()
            if env_overrides:
                self.logger.info(f"Applying environment overrides: {list(env_overrides.keys())}")
                config_data.update(env_overrides)

            self._config = self.build_config(config_data)
            return self._config

    def reload_config(self) -> EvaluationConfig:
        """Discard the cached configuration and load it again."""
        with self._lock:
            self._config = None
        return self.load_config()

    def build_config(self, config_data: Dict[str, Any]) -> EvaluationConfig:
        """Translate a flat settings mapping into an EvaluationConfig."""
        unknown = set(config_data) - self.FILE_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        values = {key: value for key, value in config_data.items()
                  if key not in ('business_days', 'holidays')}
        if 'business_days' in config_data or 'holidays' in config_data:
            try:
                values['business_day'] = BusinessCalendar(
                    config_data.get('business_days') or range(5),
                    config_data.get('holidays') or (),
                )
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid business day settings: {e}")

        try:
            return EvaluationConfig(**values)
        except ValidationError as e:
            self.logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}")

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        try:
            with open(file_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            self.logger.error(f"Failed to parse YAML file {file_path}: {e}")
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {file_path} must contain a mapping")
        return data

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Collect overrides such as DATEMATH_TIMEZONE -> timezone."""
        overrides = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX):
                continue
            config_key = key[len(self.ENV_PREFIX):].lower()
            if config_key in self.FILE_KEYS:
                overrides[config_key] = self._convert_env_value(config_key, value)

        return overrides

    def _convert_env_value(self, key: str, value: str) -> Any:
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        if key in ('business_days', 'holidays'):
            return [v.strip() for v in value.split(',') if v.strip()]

        return value
