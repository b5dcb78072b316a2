"""
Numeric codes stored in the integer slots of a level record.

The game gives these no names of its own; the names below describe what each
code was observed to do in play. Values are the exact integers on disk.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, FrozenSet, Type, TypeVar

from .errors import FormatError

E = TypeVar("E", bound=IntEnum)


class Behavior(IntEnum):
    """How the Miis move.

    0 STILL    stand in place
    1 WANDER   stroll in random directions
    2 SCATTER  run and bounce off the edges
    3 MARCH    walk in lockstep formation
    4 DRIFT    glide in parallel lanes
    5 SPIN     turn on the spot
    """

    STILL = 0
    WANDER = 1
    SCATTER = 2
    MARCH = 3
    DRIFT = 4
    SPIN = 5


class LevelType(IntEnum):
    """The objective shown to the player.

    0 FIND_THIS_MII           find the pictured Mii
    1 FIND_TWO_LOOKALIKES     find the two matching Miis
    2 FIND_THREE_LOOKALIKES   find the three matching Miis
    3 FIND_ODD_MII_OUT        find the Mii moving differently
    4 FIND_TWO_ODD_MIIS_OUT   find the two Miis moving differently
    5 FIND_FASTEST_MII        find the fastest Mii
    6 PICK_FAVORITE           pick a favorite Mii (opens a favorite pairing)
    7 FIND_FAVORITE           find the favorite again (closes the pairing)
    8 FIND_INSOMNIAC          find the Mii who is awake
    9 FIND_TWO_INSOMNIACS     find the two Miis who are awake
    """

    FIND_THIS_MII = 0
    FIND_TWO_LOOKALIKES = 1
    FIND_THREE_LOOKALIKES = 2
    FIND_ODD_MII_OUT = 3
    FIND_TWO_ODD_MIIS_OUT = 4
    FIND_FASTEST_MII = 5
    PICK_FAVORITE = 6
    FIND_FAVORITE = 7
    FIND_INSOMNIAC = 8
    FIND_TWO_INSOMNIACS = 9


class Map(IntEnum):
    """The environment the level is played in.

    0 PLAZA
    1 NIGHT_CITY
    2 OUTER_SPACE
    3 POOL         far fewer Miis fit in the water
    4 PARK
    5 STAGE
    """

    PLAZA = 0
    NIGHT_CITY = 1
    OUTER_SPACE = 2
    POOL = 3
    PARK = 4
    STAGE = 5


ODD_OUT_TYPES: FrozenSet[LevelType] = frozenset(
    {LevelType.FIND_ODD_MII_OUT, LevelType.FIND_TWO_ODD_MIIS_OUT}
)
INSOMNIAC_TYPES: FrozenSet[LevelType] = frozenset(
    {LevelType.FIND_INSOMNIAC, LevelType.FIND_TWO_INSOMNIACS}
)
FAVORITE_TYPES: FrozenSet[LevelType] = frozenset(
    {LevelType.PICK_FAVORITE, LevelType.FIND_FAVORITE}
)


def is_known(enum: Type[IntEnum], value: int) -> bool:
    try:
        enum(value)
    except ValueError:
        return False
    return True


def coerce(enum: Type[E], value: Any, *, where: str) -> E:
    """Resolve a member, its integer code, or its name into a member of `enum`."""
    if isinstance(value, bool):
        raise FormatError(f"{where}: expected {enum.__name__} code, got bool")
    if isinstance(value, int):
        try:
            return enum(value)
        except ValueError:
            raise FormatError(f"{where}: unknown {enum.__name__} code {value}") from None
    if isinstance(value, str):
        key = value.strip().upper()
        if key in enum.__members__:
            return enum.__members__[key]
        raise FormatError(f"{where}: unknown {enum.__name__} name {value!r}")
    raise FormatError(f"{where}: {enum.__name__} must be string or int")
