"""
Advisory checks over a decoded level table.

The pass reports problems the game is known to choke on. It never changes the
table and never stops a conversion; callers decide what to do with the list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .codes import INSOMNIAC_TYPES, ODD_OUT_TYPES, Behavior, LevelType, Map, is_known
from .record import Level
from .rules import DEFAULT_RULESET, RuleSet


@dataclass(frozen=True)
class LevelWarning:
    index: int

    def describe(self) -> str:
        return "unspecified problem"

    def __str__(self) -> str:
        return f"level {self.index}: {self.describe()}"


@dataclass(frozen=True)
class DuplicatePickFavorite(LevelWarning):
    def describe(self) -> str:
        return "picks a favorite while an earlier pick is still unmatched"


@dataclass(frozen=True)
class UnmatchedFindFavorite(LevelWarning):
    def describe(self) -> str:
        return "asks to find a favorite that was never picked"


@dataclass(frozen=True)
class IncompatibleBehavior(LevelWarning):
    required: Tuple[int, ...]
    actual: int

    def describe(self) -> str:
        allowed = ", ".join(_name(Behavior, b) for b in self.required)
        return f"behavior {_name(Behavior, self.actual)} does not work with this objective (needs {allowed})"


@dataclass(frozen=True)
class MiiCapExceeded(LevelWarning):
    cap: int
    actual: int

    def describe(self) -> str:
        return f"{self.actual} Miis exceeds this map's ceiling of {self.cap}"


@dataclass(frozen=True)
class UnknownCode(LevelWarning):
    field: str
    value: int

    def describe(self) -> str:
        return f"{self.field} code {self.value} is not a known value"


@dataclass(frozen=True)
class UnresolvedFavoritePairing(LevelWarning):
    index: int = -1

    def describe(self) -> str:
        return "a favorite was picked but never found before the end of the table"

    def __str__(self) -> str:
        return self.describe()


def _name(enum, value: int) -> str:
    return enum(value).name if is_known(enum, value) else str(value)


def _required_behaviors(level_type: int, ruleset: RuleSet) -> Tuple[int, ...]:
    if level_type in ODD_OUT_TYPES:
        return tuple(int(b) for b in ruleset.odd_out_behaviors)
    if level_type in INSOMNIAC_TYPES:
        return (int(ruleset.insomniac_behavior),)
    if level_type == LevelType.FIND_FASTEST_MII:
        return (int(ruleset.fastest_behavior),)
    return ()


def validate_table(table: Sequence[Level], ruleset: RuleSet = DEFAULT_RULESET) -> List[LevelWarning]:
    warnings: List[LevelWarning] = []
    favorite_pending = False

    for index, level in enumerate(table):
        for name, enum in (("behavior", Behavior), ("level_type", LevelType), ("map", Map)):
            value = getattr(level, name)
            if not is_known(enum, value):
                warnings.append(UnknownCode(index, name, value))

        if level.level_type == LevelType.PICK_FAVORITE:
            if favorite_pending:
                warnings.append(DuplicatePickFavorite(index))
            favorite_pending = True
        elif level.level_type == LevelType.FIND_FAVORITE:
            if favorite_pending:
                favorite_pending = False
            else:
                warnings.append(UnmatchedFindFavorite(index))

        required = _required_behaviors(level.level_type, ruleset)
        if required and level.behavior not in required:
            warnings.append(IncompatibleBehavior(index, required, level.behavior))

        cap = ruleset.mii_cap(level.map)
        if level.num_miis > cap:
            warnings.append(MiiCapExceeded(index, cap, level.num_miis))

    if favorite_pending:
        warnings.append(UnresolvedFavoritePairing())
    return warnings
