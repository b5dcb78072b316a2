"""
Seeded generation of a complete level table.

One pseudorandom stream drives the whole table and is consumed in a fixed
order: per level, the objective first, then every open field in record order
(integers, then floats). Reordering any draw changes the output for a seed.
"""

from __future__ import annotations

import random
import secrets
from typing import List, Optional, Sequence, Tuple

from .codes import LevelType
from .constraints import ConstrainedSet, ConstrainedValue
from .errors import ConstraintError, RandomizationFailure
from .record import FIELD_NAMES, Level, round_f32
from .rules import DEFAULT_RULESET, LevelDomain, Rule, RuleSet, apply_chain, build_rule_chain

SEED_BITS = 64


def new_seed() -> int:
    return secrets.randbits(SEED_BITS)


def _check_seed(seed: int) -> None:
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise ValueError("seed must be an int")
    if seed < 0 or seed >= 1 << SEED_BITS:
        raise ValueError(f"seed must fit in {SEED_BITS} unsigned bits")


def decide_level_type(
    rng: random.Random,
    index: int,
    length: int,
    favorite_pending: bool,
    types: Sequence[LevelType],
) -> Tuple[LevelType, bool]:
    """Pick the objective for one slot and return it with the updated pending flag."""
    if index == length - 1:
        if favorite_pending:
            return LevelType.FIND_FAVORITE, False
        last = ConstrainedSet(types)
        last.subtract([LevelType.PICK_FAVORITE, LevelType.FIND_FAVORITE])
        return last.sample(rng), False

    domain = ConstrainedSet(types)
    drawn = domain.sample(rng)
    if drawn == LevelType.PICK_FAVORITE and favorite_pending:
        domain.remove(LevelType.PICK_FAVORITE)
        drawn = domain.sample(rng)
    elif drawn == LevelType.FIND_FAVORITE and not favorite_pending:
        domain.remove(LevelType.FIND_FAVORITE)
        drawn = domain.sample(rng)

    if drawn == LevelType.PICK_FAVORITE:
        favorite_pending = True
    elif drawn == LevelType.FIND_FAVORITE:
        favorite_pending = False
    return drawn, favorite_pending


def _sample_level(rng: random.Random, chain: Sequence[Rule], domain: LevelDomain, index: int) -> Level:
    values = {}
    for name in FIELD_NAMES:
        d = domain[name]
        try:
            value = d.sample(rng)
            if isinstance(d, ConstrainedValue) and not d.integral:
                value = round_f32(value)
            d.set_exact(value)
        except ConstraintError as exc:
            raise RandomizationFailure(index, name, "sample", str(exc)) from exc
        values[name] = int(value) if isinstance(d, ConstrainedSet) or d.integral else float(value)
        apply_chain(chain, domain, index)
    return Level(**values)


def randomize_table(
    length: int,
    seed: int,
    ruleset: RuleSet = DEFAULT_RULESET,
    chain: Optional[Sequence[Rule]] = None,
) -> List[Level]:
    """Generate `length` levels from `seed`.

    Raises RandomizationFailure if any rule contradicts an earlier decision;
    nothing is returned in that case.
    """
    _check_seed(seed)
    if length < 0:
        raise ValueError("length must be >= 0")
    if chain is None:
        chain = build_rule_chain(ruleset)

    rng = random.Random(seed)
    favorite_pending = False
    table: List[Level] = []
    for index in range(length):
        level_type, favorite_pending = decide_level_type(
            rng, index, length, favorite_pending, ruleset.level_types
        )
        domain = LevelDomain.initial(ruleset, level_type)
        apply_chain(chain, domain, index)
        table.append(_sample_level(rng, chain, domain, index))
    return table
