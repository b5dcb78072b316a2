"""
Narrowing domains for level fields.

A field starts with a wide legal domain and rules only ever shrink it. A rule
that asks for something outside the current domain fails loudly instead of
overwriting what an earlier rule decided.
"""

from __future__ import annotations

import random
from typing import Any, Iterable, Optional, Sequence, Tuple, Union

from .errors import Conflict, EmptySet

Number = Union[int, float]


class ConstrainedValue:
    """Numeric domain: either Exact(v) or an inclusive Range(min, max)."""

    def __init__(self, minimum: Number, maximum: Number, *, exact: bool = False) -> None:
        if minimum > maximum:
            raise ValueError(f"empty range [{minimum}, {maximum}]")
        self._min = minimum
        self._max = maximum
        self._exact = exact
        self.integral = isinstance(minimum, int) and isinstance(maximum, int)

    @classmethod
    def exactly(cls, value: Number) -> "ConstrainedValue":
        return cls(value, value, exact=True)

    @classmethod
    def between(cls, minimum: Number, maximum: Number) -> "ConstrainedValue":
        return cls(minimum, maximum)

    @property
    def is_exact(self) -> bool:
        return self._exact

    is_decided = is_exact

    @property
    def value(self) -> Optional[Number]:
        return self._min if self._exact else None

    @property
    def minimum(self) -> Number:
        return self._min

    @property
    def maximum(self) -> Number:
        return self._max

    def narrow_min(self, value: Number) -> None:
        if self._exact:
            if value > self._min:
                raise Conflict(f"minimum {value} exceeds exact value {self._min}")
            return
        if value > self._max:
            raise Conflict(f"minimum {value} exceeds maximum {self._max}")
        if value > self._min:
            self._min = value

    def narrow_max(self, value: Number) -> None:
        if self._exact:
            if value < self._max:
                raise Conflict(f"maximum {value} is below exact value {self._max}")
            return
        if value < self._min:
            raise Conflict(f"maximum {value} is below minimum {self._min}")
        if value < self._max:
            self._max = value

    def constrain(self, minimum: Number, maximum: Number) -> None:
        # Both bounds are checked before either is applied.
        low = max(self._min, minimum)
        high = min(self._max, maximum)
        if self._exact:
            if minimum > self._min or maximum < self._max:
                raise Conflict(f"[{minimum}, {maximum}] excludes exact value {self._min}")
            return
        if low > high:
            raise Conflict(f"[{minimum}, {maximum}] does not overlap [{self._min}, {self._max}]")
        self._min = low
        self._max = high

    def set_exact(self, value: Number) -> None:
        if self._exact:
            if value != self._min:
                raise Conflict(f"cannot set {value}: already exactly {self._min}")
            return
        if value < self._min or value > self._max:
            raise Conflict(f"{value} is outside [{self._min}, {self._max}]")
        self._min = value
        self._max = value
        self._exact = True

    def sample(self, rng: random.Random) -> Number:
        if self._exact:
            return self._min
        if self.integral:
            return rng.randint(self._min, self._max)
        return rng.uniform(self._min, self._max)

    def __repr__(self) -> str:
        if self._exact:
            return f"Exact({self._min!r})"
        return f"Range({self._min!r}, {self._max!r})"


class ConstrainedSet:
    """Domain of an enumerated field: an ordered set of legal codes."""

    def __init__(self, members: Iterable[Any]) -> None:
        ordered: list = []
        for m in members:
            if m not in ordered:
                ordered.append(m)
        self._members: Tuple[Any, ...] = tuple(ordered)

    @property
    def members(self) -> Tuple[Any, ...]:
        return self._members

    @property
    def is_decided(self) -> bool:
        return len(self._members) == 1

    @property
    def value(self) -> Optional[Any]:
        return self._members[0] if len(self._members) == 1 else None

    def __contains__(self, item: Any) -> bool:
        return item in self._members

    def __len__(self) -> int:
        return len(self._members)

    def remove(self, value: Any) -> None:
        if value not in self._members:
            return
        remaining = tuple(m for m in self._members if m != value)
        if not remaining:
            raise EmptySet(f"removing {value!r} would leave no legal value")
        self._members = remaining

    def subtract(self, values: Sequence[Any]) -> None:
        # Applied to a copy first so a failure leaves this set untouched.
        trial = ConstrainedSet(self._members)
        for v in values:
            trial.remove(v)
        self._members = trial._members

    def intersect(self, values: Sequence[Any]) -> None:
        allowed = set(values)
        remaining = tuple(m for m in self._members if m in allowed)
        if not remaining:
            raise EmptySet(f"no overlap between {list(self._members)!r} and {list(values)!r}")
        self._members = remaining

    def set_exact(self, value: Any) -> None:
        if value not in self._members:
            raise Conflict(f"cannot set {value!r}: legal values are {list(self._members)!r}")
        self._members = (value,)

    def sample(self, rng: random.Random) -> Any:
        if not self._members:
            raise EmptySet("cannot sample from an empty set")
        return rng.choice(self._members)

    def __repr__(self) -> str:
        return f"Set({list(self._members)!r})"
