"""Evaluator for parsed date math expressions.

Folds an expression's operations over its anchor. Calendar work happens on
wall-clock time in the evaluation timezone with ``dateutil.relativedelta``;
clock units are exact durations. Results are returned in UTC.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from dateutil.relativedelta import relativedelta
from dateutil.tz import resolve_imaginary, tzutc

from ..core.config_manager import EvaluationConfig, FiscalYearStart
from ..core.error_handler import ConfigurationError, DateMathOverflowError
from ..core.logging_manager import LoggingManager
from .expression import Delta, Expression, LiteralAnchor, NowAnchor, Operation, Round, Unit

UTC = tzutc()
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Round-up lands on the last millisecond of the period
ROUND_UP_TICK = timedelta(milliseconds=1)

# Consecutive days a business day predicate may reject before giving up
MAX_NON_BUSINESS_DAYS = 3660

CALENDAR_STEPS: Dict[Unit, Callable[[int], relativedelta]] = {
    Unit.YEAR: lambda n: relativedelta(years=n),
    Unit.QUARTER: lambda n: relativedelta(months=3 * n),
    Unit.MONTH: lambda n: relativedelta(months=n),
    Unit.WEEK: lambda n: relativedelta(weeks=n),
    Unit.DAY: lambda n: relativedelta(days=n),
}

CLOCK_STEPS: Dict[Unit, Callable[[int], timedelta]] = {
    Unit.HOUR: lambda n: timedelta(hours=n),
    Unit.MINUTE: lambda n: timedelta(minutes=n),
    Unit.SECOND: lambda n: timedelta(seconds=n),
}

# Fields cleared when truncating to each unit
TRUNCATIONS = {
    Unit.YEAR: dict(month=1, day=1, hour=0, minute=0, second=0, microsecond=0),
    Unit.MONTH: dict(day=1, hour=0, minute=0, second=0, microsecond=0),
    Unit.DAY: dict(hour=0, minute=0, second=0, microsecond=0),
    Unit.HOUR: dict(minute=0, second=0, microsecond=0),
    Unit.MINUTE: dict(second=0, microsecond=0),
    Unit.SECOND: dict(microsecond=0),
}


class Evaluator:
    """Evaluates expressions against one configuration."""

    def __init__(self, config: Optional[EvaluationConfig] = None, **overrides):
        """Initialize evaluator.

        Args:
            config: Evaluation options, defaults to ``EvaluationConfig()``
            **overrides: Individual options replacing those in ``config``
        """
        self.config = (config or EvaluationConfig()).with_overrides(**overrides)
        self.timezone = self.config.timezone
        self.fiscal_year_start = self.config.fiscal_year_start or FiscalYearStart()
        self.logger = LoggingManager.get_logger(__name__)

    def evaluate(self, expression: Expression) -> datetime:
        """Evaluate ``expression`` and return an aware UTC datetime.

        Raises:
            DateMathOverflowError: An intermediate result is outside years 1-9999
        """
        try:
            moment = self.resolve_anchor(expression.anchor)
        except (OverflowError, ValueError):
            raise DateMathOverflowError(str(expression), str(expression.anchor))

        for operation in expression.operations:
            try:
                moment = self.apply(operation, moment)
            except (OverflowError, ValueError):
                raise DateMathOverflowError(str(expression), str(operation))
            self.logger.debug(f"{operation} -> {moment.isoformat()}")

        return moment.astimezone(UTC)

    def resolve_anchor(self, anchor) -> datetime:
        """Return the anchor as an aware datetime in the evaluation timezone."""
        if isinstance(anchor, NowAnchor):
            return self.config.reference_time()
        if isinstance(anchor, LiteralAnchor):
            if anchor.epoch_millis is not None:
                moment = EPOCH + timedelta(milliseconds=anchor.epoch_millis)
            else:
                moment = datetime(anchor.year, anchor.month, anchor.day, anchor.hour,
                                  anchor.minute, anchor.second, anchor.microsecond,
                                  tzinfo=anchor.tzinfo or self.timezone)
                moment = resolve_imaginary(moment)
            return moment.astimezone(self.timezone)
        raise TypeError(f"Unsupported anchor: {anchor!r}")

    def apply(self, operation: Operation, moment: datetime) -> datetime:
        """Apply a single operation to ``moment``."""
        if isinstance(operation, Delta):
            return self.add(moment, operation.unit, operation.count)
        if isinstance(operation, Round):
            start = self.floor(moment, operation.unit)
            if not self.config.round_up:
                return start
            end = self.add(start, operation.unit, 1)
            return (end.astimezone(UTC) - ROUND_UP_TICK).astimezone(self.timezone)
        raise TypeError(f"Unsupported operation: {operation!r}")

    # Deltas

    def add(self, moment: datetime, unit: Unit, count: int) -> datetime:
        """Move ``moment`` by ``count`` units."""
        if unit in CLOCK_STEPS:
            return (moment.astimezone(UTC) + CLOCK_STEPS[unit](count)).astimezone(self.timezone)
        if unit in CALENDAR_STEPS:
            return self._wall(moment + CALENDAR_STEPS[unit](count))
        if unit is Unit.BUSINESS_DAY:
            return self._add_business_days(moment, count)
        if unit.is_fiscal:
            return self._add_fiscal(moment, unit, count)
        raise ValueError(f"Unsupported unit: {unit}")

    def _add_business_days(self, moment: datetime, count: int) -> datetime:
        is_business_day = self.config.business_day
        step = relativedelta(days=1 if count > 0 else -1)
        remaining = abs(count)
        rejected = 0
        while remaining:
            moment = self._wall(moment + step)
            if is_business_day(moment):
                remaining -= 1
                rejected = 0
            else:
                rejected += 1
                if rejected > MAX_NON_BUSINESS_DAYS:
                    raise ConfigurationError(
                        f"Business day predicate rejected {MAX_NON_BUSINESS_DAYS} consecutive days"
                    )
        return moment

    def _add_fiscal(self, moment: datetime, unit: Unit, count: int) -> datetime:
        """Add fiscal years or quarters.

        Without a fiscal anchor these are calendar years and quarters. With one,
        a moment on a fiscal period boundary moves to the boundary ``count``
        periods away; any other moment moves like its calendar counterpart.
        """
        calendar_unit = Unit.YEAR if unit is Unit.FISCAL_YEAR else Unit.QUARTER
        if self.fiscal_year_start.is_calendar_year:
            return self.add(moment, calendar_unit, count)

        start = self.floor(moment, unit)
        if start != moment:
            return self.add(moment, calendar_unit, count)
        return self._fiscal_boundary(start, unit, count)

    # Rounding

    def floor(self, moment: datetime, unit: Unit) -> datetime:
        """Return the first instant of the ``unit`` period containing ``moment``."""
        if unit in TRUNCATIONS:
            return self._wall(moment.replace(**TRUNCATIONS[unit]))
        if unit is Unit.QUARTER:
            return self._wall(moment.replace(month=(moment.month - 1) // 3 * 3 + 1,
                                             **TRUNCATIONS[Unit.MONTH]))
        if unit is Unit.WEEK:
            day = moment.replace(**TRUNCATIONS[Unit.DAY])
            back = (day.weekday() - self.config.start_of_week) % 7
            return self._wall(day - relativedelta(days=back))
        if unit is Unit.FISCAL_YEAR:
            return self.fiscal_year_of(moment)
        if unit is Unit.FISCAL_QUARTER:
            return self.fiscal_quarter_of(moment)
        raise ValueError(f"Cannot round to unit {unit.value}")

    # Fiscal periods

    def fiscal_year_anchor(self, year: int) -> Optional[datetime]:
        """Project the fiscal year start into ``year``.

        Days past the end of the month roll into the next month, so a Feb 29
        start falls on Mar 1 in non-leap years. Returns None outside years 1-9999.
        """
        anchor = self.fiscal_year_start
        try:
            first = datetime(year, anchor.month, 1, anchor.hour, anchor.minute,
                             anchor.second, tzinfo=self.timezone)
            return self._wall(first + timedelta(days=anchor.day - 1))
        except (OverflowError, ValueError):
            return None

    def fiscal_year_of(self, moment: datetime) -> datetime:
        """Latest fiscal year start not after ``moment``."""
        candidates = [self.fiscal_year_anchor(year)
                      for year in (moment.year - 1, moment.year, moment.year + 1)]
        starts = [candidate for candidate in candidates
                  if candidate is not None and candidate <= moment]
        if not starts:
            raise OverflowError(f"No fiscal year starts before {moment.isoformat()}")
        return max(starts)

    def fiscal_quarter_of(self, moment: datetime) -> datetime:
        """Latest fiscal quarter start not after ``moment``."""
        year_start = self.fiscal_year_of(moment)
        for quarter in (3, 2, 1, 0):
            start = self._wall(year_start + relativedelta(months=3 * quarter))
            if start <= moment:
                return start
        return year_start

    def _fiscal_boundary(self, start: datetime, unit: Unit, count: int) -> datetime:
        """Start of the fiscal period ``count`` periods after the one beginning at ``start``."""
        year_start = self.fiscal_year_of(start)
        if unit is Unit.FISCAL_YEAR:
            years, quarter = count, 0
        else:
            current = next(quarter for quarter in (3, 2, 1, 0)
                           if self._wall(year_start + relativedelta(months=3 * quarter)) <= start)
            years, quarter = divmod(current + count, 4)

        target = self.fiscal_year_anchor(year_start.year + years)
        if target is None:
            raise OverflowError(f"Fiscal year {year_start.year + years} out of range")
        return self._wall(target + relativedelta(months=3 * quarter))

    def _wall(self, moment: datetime) -> datetime:
        """Normalise a wall-clock result that may fall in a DST gap."""
        return resolve_imaginary(moment)
