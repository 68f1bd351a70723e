"""Expression tree produced by the grammar parser.

Pure data: an anchor plus an ordered tuple of operations. Instances are frozen
and validated on construction, so one parsed expression can be evaluated any
number of times with different configurations.
"""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple, Union

if TYPE_CHECKING:
    from ..core.config_manager import EvaluationConfig


class Unit(Enum):
    """Units accepted by delta and rounding operations."""
    YEAR = "y"
    FISCAL_YEAR = "fy"
    QUARTER = "Q"
    FISCAL_QUARTER = "fQ"
    MONTH = "M"
    WEEK = "w"
    DAY = "d"
    HOUR = "h"
    MINUTE = "m"
    SECOND = "s"
    BUSINESS_DAY = "b"

    @classmethod
    def from_symbol(cls, symbol: str) -> 'Unit':
        """Look up a unit by its expression symbol (``H`` is an alias of ``h``)."""
        if symbol == "H":
            return cls.HOUR
        return cls(symbol)

    @property
    def is_fiscal(self) -> bool:
        return self in (Unit.FISCAL_YEAR, Unit.FISCAL_QUARTER)

    @property
    def is_roundable(self) -> bool:
        return self is not Unit.BUSINESS_DAY


UNIT_SYMBOLS = frozenset(unit.value for unit in Unit) | {"H"}


@dataclass(frozen=True)
class NowAnchor:
    """Anchor resolved from the configured reference instant."""

    def __str__(self) -> str:
        return "now"


@dataclass(frozen=True)
class LiteralAnchor:
    """Absolute anchor from a date/time literal or epoch milliseconds.

    Fields missing from the literal hold their minimum value. ``tzinfo`` is set
    only when the literal carried an explicit offset; otherwise the evaluation
    timezone applies.
    """
    year: int = 1970
    month: int = 1
    day: int = 1
    hour: int = 0
    minute: int = 0
    second: int = 0
    microsecond: int = 0
    tzinfo: Optional[tzinfo] = None
    epoch_millis: Optional[int] = None
    source: str = field(default="", compare=False)

    def __post_init__(self):
        if self.epoch_millis is not None:
            if self.epoch_millis < 0:
                raise ValueError(f"Epoch milliseconds must not be negative: {self.epoch_millis}")
            return
        # datetime performs the calendar range checks
        datetime(self.year, self.month, self.day, self.hour, self.minute,
                 self.second, self.microsecond)

    def __str__(self) -> str:
        if self.source:
            return self.source
        if self.epoch_millis is not None:
            return str(self.epoch_millis)
        text = f"{self.year:04d}-{self.month:02d}-{self.day:02d}T{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        if self.microsecond:
            text += f".{self.microsecond:06d}".rstrip("0")
        return text


Anchor = Union[NowAnchor, LiteralAnchor]


@dataclass(frozen=True)
class Delta:
    """Add ``count`` units (negative counts subtract)."""
    count: int
    unit: Unit

    def __post_init__(self):
        if not isinstance(self.unit, Unit):
            raise TypeError(f"Delta unit must be a Unit, got {self.unit!r}")

    def __str__(self) -> str:
        sign = "-" if self.count < 0 else "+"
        return f"{sign}{abs(self.count)}{self.unit.value}"


@dataclass(frozen=True)
class Round:
    """Round to the start (or end, when rounding up) of the containing unit."""
    unit: Unit

    def __post_init__(self):
        if not isinstance(self.unit, Unit):
            raise TypeError(f"Round unit must be a Unit, got {self.unit!r}")
        if not self.unit.is_roundable:
            raise ValueError(f"Cannot round to unit {self.unit.value}")

    def __str__(self) -> str:
        return f"/{self.unit.value}"


Operation = Union[Delta, Round]


@dataclass(frozen=True)
class Expression:
    """An anchor followed by operations applied strictly left to right."""
    anchor: Anchor = field(default_factory=NowAnchor)
    operations: Tuple[Operation, ...] = ()

    def __post_init__(self):
        if not isinstance(self.anchor, (NowAnchor, LiteralAnchor)):
            raise TypeError(f"Unsupported anchor: {self.anchor!r}")
        operations = tuple(self.operations)
        for operation in operations:
            if not isinstance(operation, (Delta, Round)):
                raise TypeError(f"Unsupported operation: {operation!r}")
        object.__setattr__(self, "operations", operations)

    def evaluate(self, config: Optional['EvaluationConfig'] = None, **overrides) -> datetime:
        """Evaluate this expression; see :func:`datemath.evaluate`."""
        from .evaluator import Evaluator

        return Evaluator(config, **overrides).evaluate(self)

    def __str__(self) -> str:
        math = "".join(str(operation) for operation in self.operations)
        if isinstance(self.anchor, NowAnchor):
            return f"now{math}"
        return f"{self.anchor}||{math}" if math else str(self.anchor)
