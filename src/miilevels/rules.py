"""
Empirical validity rules for generated levels.

The game documents none of these. Each revision below is a snapshot of what
was learned from crashes and softlocks in play-testing, and each is known to
be incomplete. Revisions disagree on some values; the latest one is the
default and callers may load their own from JSON.

A rule set is compiled into an ordered chain of declarative rules. A rule is a
predicate over the decided fields of a level plus the narrowing calls to make
when it holds. Narrowing never overwrites: a contradictory rule raises.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from .codes import INSOMNIAC_TYPES, ODD_OUT_TYPES, Behavior, LevelType, Map, coerce
from .constraints import ConstrainedSet, ConstrainedValue
from .errors import ConstraintError, RandomizationFailure, RuleSetError
from .record import FLOAT_FIELDS, U32_MAX, round_f32

FloatDefault = Union[float, Tuple[float, float]]
Bounds = Tuple[float, float]


@dataclass(frozen=True)
class RuleSet:
    name: str
    revision: int
    notes: str
    global_mii_cap: int
    mii_floor: int
    map_mii_bounds: Mapping[Map, Tuple[int, int]]
    type_mii_floors: Mapping[LevelType, int]
    odd_out_behaviors: Tuple[Behavior, ...]
    insomniac_behavior: Behavior
    fastest_behavior: Behavior
    dark_disabled_maps: Tuple[Map, ...]
    camera_bounds: Mapping[Map, Mapping[str, Bounds]]
    softlocks: Tuple[Tuple[Map, Behavior], ...]
    field_defaults: Mapping[str, FloatDefault]
    level_types: Tuple[LevelType, ...] = field(default=tuple(LevelType))

    def mii_cap(self, map_code: int) -> int:
        return self.map_mii_bounds.get(map_code, (0, self.global_mii_cap))[1]

    def describe(self) -> str:
        return f"rule set {self.name!r} (revision {self.revision}): {self.notes}"


_FIELD_DEFAULTS: Dict[str, FloatDefault] = {
    "zoom_out_max": (30.0, 60.0),
    "zoom_in_max": (8.0, 20.0),
    "unk7": 1.0,
    "horiz_dist": (10.0, 40.0),
    "vert_dist": (5.0, 25.0),
    "darkness": (0.0, 0.75),
    "head_size": (0.75, 1.5),
    "unk12": 0.0,
    "unk13": 0.0,
    "unk14": 1.0,
    "unk15": 1.0,
    "unk16": 0.0,
}

_R1 = RuleSet(
    name="r1",
    revision=1,
    notes=(
        "first play-tested rules; odd-out objectives tried with WANDER/MARCH, "
        "Mii counts kept to 4..90; unk7 and unk12..unk16 pinned to vanilla values"
    ),
    global_mii_cap=90,
    mii_floor=4,
    map_mii_bounds={
        Map.PLAZA: (4, 90),
        Map.NIGHT_CITY: (4, 90),
        Map.OUTER_SPACE: (4, 80),
        Map.POOL: (4, 30),
        Map.PARK: (4, 90),
        Map.STAGE: (4, 90),
    },
    type_mii_floors={
        LevelType.FIND_THREE_LOOKALIKES: 9,
    },
    odd_out_behaviors=(Behavior.WANDER, Behavior.MARCH),
    insomniac_behavior=Behavior.STILL,
    fastest_behavior=Behavior.SCATTER,
    dark_disabled_maps=(Map.OUTER_SPACE,),
    camera_bounds={
        Map.OUTER_SPACE: {"zoom_out_max": (30.0, 45.0)},
        Map.POOL: {"vert_dist": (5.0, 15.0)},
    },
    softlocks=((Map.POOL, Behavior.SCATTER),),
    field_defaults=dict(_FIELD_DEFAULTS),
)

_R2 = RuleSet(
    name="r2",
    revision=2,
    notes=(
        "latest play-tested rules; odd-out objectives need WANDER or DRIFT, "
        "Mii counts 6..99 (POOL 30); unk7 and unk12..unk16 pinned to vanilla "
        "values because their effect is unknown; untested combinations may "
        "still crash"
    ),
    global_mii_cap=99,
    mii_floor=6,
    map_mii_bounds={
        Map.PLAZA: (6, 99),
        Map.NIGHT_CITY: (6, 99),
        Map.OUTER_SPACE: (6, 90),
        Map.POOL: (6, 30),
        Map.PARK: (6, 99),
        Map.STAGE: (6, 90),
    },
    type_mii_floors={
        LevelType.FIND_TWO_LOOKALIKES: 8,
        LevelType.FIND_THREE_LOOKALIKES: 12,
        LevelType.FIND_TWO_ODD_MIIS_OUT: 10,
        LevelType.FIND_TWO_INSOMNIACS: 10,
    },
    odd_out_behaviors=(Behavior.WANDER, Behavior.DRIFT),
    insomniac_behavior=Behavior.STILL,
    fastest_behavior=Behavior.SCATTER,
    dark_disabled_maps=(Map.OUTER_SPACE,),
    camera_bounds={
        Map.OUTER_SPACE: {"zoom_out_max": (30.0, 40.0)},
        Map.POOL: {"vert_dist": (5.0, 12.0), "horiz_dist": (10.0, 30.0)},
        Map.STAGE: {"horiz_dist": (10.0, 25.0), "zoom_in_max": (8.0, 14.0)},
    },
    softlocks=(
        (Map.POOL, Behavior.SCATTER),
        (Map.OUTER_SPACE, Behavior.MARCH),
        (Map.STAGE, Behavior.SPIN),
    ),
    field_defaults=dict(_FIELD_DEFAULTS),
)

REVISIONS: Dict[str, RuleSet] = {"r1": _R1, "r2": _R2}
LATEST_REVISION = "r2"
DEFAULT_RULESET = REVISIONS[LATEST_REVISION]


def get_ruleset(name: str) -> RuleSet:
    if name not in REVISIONS:
        raise RuleSetError(f"unknown rule set {name!r} (known: {', '.join(sorted(REVISIONS))})")
    return REVISIONS[name]


# ---------------------------------------------------------------------------
# Loading rule sets from JSON
# ---------------------------------------------------------------------------


def _expect_int(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RuleSetError(f"{where} must be an int")
    return value


def _expect_bounds(value: Any, where: str, *, integral: bool) -> Tuple[Any, Any]:
    if not isinstance(value, list) or len(value) != 2:
        raise RuleSetError(f"{where} must be [min, max]")
    if integral:
        lo, hi = _expect_int(value[0], where), _expect_int(value[1], where)
    else:
        lo, hi = _expect_float(value[0], where), _expect_float(value[1], where)
    if lo > hi:
        raise RuleSetError(f"{where}: min {lo} exceeds max {hi}")
    return lo, hi


def _expect_float(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RuleSetError(f"{where} must be a number")
    try:
        return round_f32(float(value))
    except OverflowError:
        raise RuleSetError(f"{where}: {value} out of single-precision range") from None


def _expect_mapping(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise RuleSetError(f"{where} must be a mapping")
    return value


def _expect_list(value: Any, where: str) -> List[Any]:
    if not isinstance(value, list):
        raise RuleSetError(f"{where} must be a list")
    return value


def _expect_float_field(name: str, where: str) -> str:
    if name not in FLOAT_FIELDS:
        raise RuleSetError(f"{where}: {name!r} is not a scene/camera field")
    return name


def _float_default(value: Any, where: str) -> FloatDefault:
    if isinstance(value, list):
        return _expect_bounds(value, where, integral=False)
    return _expect_float(value, where)


_KEYS = (
    "base",
    "name",
    "revision",
    "notes",
    "global_mii_cap",
    "mii_floor",
    "map_mii_bounds",
    "type_mii_floors",
    "odd_out_behaviors",
    "insomniac_behavior",
    "fastest_behavior",
    "dark_disabled_maps",
    "camera_bounds",
    "softlocks",
    "field_defaults",
    "level_types",
)


def ruleset_from_dict(data: Any, *, source: str = "<rules>") -> RuleSet:
    """Build a rule set from a base revision plus the overrides in `data`.

    Mapping-valued keys (map_mii_bounds, type_mii_floors, camera_bounds,
    field_defaults) are merged entry by entry into the base; every other key
    replaces the base value outright.
    """
    data = _expect_mapping(data, source)
    unknown = sorted(k for k in data if k not in _KEYS)
    if unknown:
        raise RuleSetError(f"{source}: unknown keys: {', '.join(unknown)}")

    base = get_ruleset(str(data.get("base", LATEST_REVISION)))
    changes: Dict[str, Any] = {}

    if "name" in data:
        changes["name"] = str(data["name"])
    else:
        changes["name"] = Path(source).stem if source != "<rules>" else f"{base.name}+custom"
    if "revision" in data:
        changes["revision"] = _expect_int(data["revision"], f"{source}:revision")
    if "notes" in data:
        changes["notes"] = str(data["notes"])
    for key in ("global_mii_cap", "mii_floor"):
        if key in data:
            changes[key] = _expect_int(data[key], f"{source}:{key}")

    if "map_mii_bounds" in data:
        merged = dict(base.map_mii_bounds)
        for raw, bounds in _expect_mapping(data["map_mii_bounds"], f"{source}:map_mii_bounds").items():
            where = f"{source}:map_mii_bounds.{raw}"
            merged[coerce(Map, _key(raw), where=where)] = _expect_bounds(bounds, where, integral=True)
        changes["map_mii_bounds"] = merged

    if "type_mii_floors" in data:
        merged_floors = dict(base.type_mii_floors)
        for raw, floor in _expect_mapping(data["type_mii_floors"], f"{source}:type_mii_floors").items():
            where = f"{source}:type_mii_floors.{raw}"
            merged_floors[coerce(LevelType, _key(raw), where=where)] = _expect_int(floor, where)
        changes["type_mii_floors"] = merged_floors

    if "odd_out_behaviors" in data:
        where = f"{source}:odd_out_behaviors"
        changes["odd_out_behaviors"] = tuple(
            coerce(Behavior, b, where=where) for b in _expect_list(data["odd_out_behaviors"], where)
        )
    for key in ("insomniac_behavior", "fastest_behavior"):
        if key in data:
            changes[key] = coerce(Behavior, data[key], where=f"{source}:{key}")

    if "dark_disabled_maps" in data:
        where = f"{source}:dark_disabled_maps"
        changes["dark_disabled_maps"] = tuple(
            coerce(Map, m, where=where) for m in _expect_list(data["dark_disabled_maps"], where)
        )

    if "camera_bounds" in data:
        merged_camera = {m: dict(b) for m, b in base.camera_bounds.items()}
        for raw, fields in _expect_mapping(data["camera_bounds"], f"{source}:camera_bounds").items():
            where = f"{source}:camera_bounds.{raw}"
            entry: Dict[str, Bounds] = {}
            for name, bounds in _expect_mapping(fields, where).items():
                _expect_float_field(name, where)
                entry[name] = _expect_bounds(bounds, f"{where}.{name}", integral=False)
            merged_camera[coerce(Map, _key(raw), where=where)] = entry
        changes["camera_bounds"] = merged_camera

    if "softlocks" in data:
        where = f"{source}:softlocks"
        pairs = []
        for item in _expect_list(data["softlocks"], where):
            if not isinstance(item, list) or len(item) != 2:
                raise RuleSetError(f"{where}: each entry must be [map, behavior]")
            pairs.append((coerce(Map, item[0], where=where), coerce(Behavior, item[1], where=where)))
        changes["softlocks"] = tuple(pairs)

    if "field_defaults" in data:
        merged_defaults = dict(base.field_defaults)
        for name, value in _expect_mapping(data["field_defaults"], f"{source}:field_defaults").items():
            where = f"{source}:field_defaults.{name}"
            _expect_float_field(name, where)
            merged_defaults[name] = _float_default(value, where)
        changes["field_defaults"] = merged_defaults

    if "level_types" in data:
        where = f"{source}:level_types"
        changes["level_types"] = tuple(
            coerce(LevelType, t, where=where) for t in _expect_list(data["level_types"], where)
        )

    ruleset = replace(base, **changes)
    check_ruleset(ruleset, where=source)
    return ruleset


def _key(raw: str) -> Union[int, str]:
    # JSON object keys are always strings; allow numeric codes too.
    return int(raw) if raw.strip().isdigit() else raw


def check_ruleset(ruleset: RuleSet, *, where: str = "<rules>") -> None:
    if ruleset.global_mii_cap < 0 or ruleset.global_mii_cap > U32_MAX:
        raise RuleSetError(f"{where}: global_mii_cap out of range")
    if ruleset.mii_floor < 0 or ruleset.mii_floor > ruleset.global_mii_cap:
        raise RuleSetError(f"{where}: mii_floor must be within 0..global_mii_cap")
    missing_maps = [m.name for m in Map if m not in ruleset.map_mii_bounds]
    if missing_maps:
        raise RuleSetError(f"{where}: map_mii_bounds missing maps: {', '.join(missing_maps)}")
    for m, (lo, hi) in ruleset.map_mii_bounds.items():
        if lo > hi or hi > ruleset.global_mii_cap:
            raise RuleSetError(f"{where}: map_mii_bounds.{m.name} must satisfy min <= max <= global_mii_cap")
    missing_fields = [f for f in FLOAT_FIELDS if f not in ruleset.field_defaults]
    if missing_fields:
        raise RuleSetError(f"{where}: field_defaults missing: {', '.join(missing_fields)}")
    if not ruleset.odd_out_behaviors:
        raise RuleSetError(f"{where}: odd_out_behaviors must not be empty")
    types = set(ruleset.level_types)
    if (LevelType.PICK_FAVORITE in types) != (LevelType.FIND_FAVORITE in types):
        raise RuleSetError(f"{where}: PICK_FAVORITE and FIND_FAVORITE must be enabled together")
    if not types - {LevelType.PICK_FAVORITE, LevelType.FIND_FAVORITE}:
        raise RuleSetError(f"{where}: level_types needs an objective besides the favorite pair")


def load_ruleset(path: Path) -> RuleSet:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RuleSetError(f"{path}: invalid JSON: {exc}") from None
    return ruleset_from_dict(data, source=str(path))


# ---------------------------------------------------------------------------
# Per-level domains and the rule chain
# ---------------------------------------------------------------------------

Domain = Union[ConstrainedValue, ConstrainedSet]


class LevelDomain:
    """The legal values still open for every field of one level."""

    def __init__(self, fields: Dict[str, Domain]) -> None:
        self._fields = fields

    @classmethod
    def initial(cls, ruleset: RuleSet, level_type: int) -> "LevelDomain":
        fields: Dict[str, Domain] = {
            "num_miis": ConstrainedValue.between(0, ruleset.global_mii_cap),
            "behavior": ConstrainedSet(Behavior),
            "level_type": ConstrainedValue.exactly(level_type),
            "map": ConstrainedSet(Map),
        }
        for name in FLOAT_FIELDS:
            default = ruleset.field_defaults[name]
            if isinstance(default, tuple):
                fields[name] = ConstrainedValue.between(float(default[0]), float(default[1]))
            else:
                fields[name] = ConstrainedValue.exactly(float(default))
        return cls(fields)

    def __getitem__(self, name: str) -> Domain:
        return self._fields[name]

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._fields.items())
        return f"LevelDomain({inner})"


Predicate = Callable[[LevelDomain], bool]

NARROWING_OPS = frozenset(
    {"narrow_min", "narrow_max", "constrain", "set_exact", "remove", "subtract", "intersect"}
)


@dataclass(frozen=True)
class Narrowing:
    field: str
    op: str
    args: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if self.op not in NARROWING_OPS:
            raise ValueError(f"unknown narrowing operation {self.op!r}")

    def apply(self, domain: LevelDomain) -> None:
        getattr(domain[self.field], self.op)(*self.args)


@dataclass(frozen=True)
class Rule:
    name: str
    when: Predicate
    effects: Tuple[Narrowing, ...]


def always() -> Predicate:
    return lambda domain: True


def decided_in(name: str, values: Iterable[Any]) -> Predicate:
    allowed = frozenset(values)

    def check(domain: LevelDomain) -> bool:
        d = domain[name]
        return d.is_decided and d.value in allowed

    return check


def decided_outside(name: str, lo: float, hi: float) -> Predicate:
    def check(domain: LevelDomain) -> bool:
        d = domain[name]
        return d.is_decided and (d.value < lo or d.value > hi)

    return check


def build_rule_chain(ruleset: RuleSet) -> Tuple[Rule, ...]:
    chain: List[Rule] = [
        Rule("mii-floor", always(), (Narrowing("num_miis", "narrow_min", (ruleset.mii_floor,)),)),
    ]
    for level_type, floor in sorted(ruleset.type_mii_floors.items()):
        chain.append(
            Rule(
                f"mii-floor:{level_type.name}",
                decided_in("level_type", [level_type]),
                (Narrowing("num_miis", "narrow_min", (floor,)),),
            )
        )

    chain.append(
        Rule(
            "odd-out-behavior",
            decided_in("level_type", ODD_OUT_TYPES),
            (Narrowing("behavior", "intersect", (tuple(ruleset.odd_out_behaviors),)),),
        )
    )
    chain.append(
        Rule(
            "insomniac-behavior",
            decided_in("level_type", INSOMNIAC_TYPES),
            (Narrowing("behavior", "set_exact", (ruleset.insomniac_behavior,)),),
        )
    )
    chain.append(
        Rule(
            "fastest-behavior",
            decided_in("level_type", [LevelType.FIND_FASTEST_MII]),
            (Narrowing("behavior", "set_exact", (ruleset.fastest_behavior,)),),
        )
    )

    for m, (lo, hi) in sorted(ruleset.map_mii_bounds.items()):
        chain.append(
            Rule(f"mii-cap:{m.name}", decided_in("map", [m]), (Narrowing("num_miis", "constrain", (lo, hi)),))
        )
        chain.append(
            Rule(
                f"mii-cap:{m.name}:exclude",
                decided_outside("num_miis", lo, hi),
                (Narrowing("map", "remove", (m,)),),
            )
        )

    for m in ruleset.dark_disabled_maps:
        chain.append(
            Rule(f"no-darkness:{m.name}", decided_in("map", [m]), (Narrowing("darkness", "set_exact", (0.0,)),))
        )

    for m, fields in sorted(ruleset.camera_bounds.items()):
        effects = tuple(Narrowing(name, "constrain", bounds) for name, bounds in fields.items())
        chain.append(Rule(f"camera:{m.name}", decided_in("map", [m]), effects))

    for m, b in ruleset.softlocks:
        label = f"softlock:{m.name}+{b.name}"
        chain.append(Rule(label, decided_in("map", [m]), (Narrowing("behavior", "remove", (b,)),)))
        chain.append(Rule(label, decided_in("behavior", [b]), (Narrowing("map", "remove", (m,)),)))

    return tuple(chain)


def apply_chain(chain: Sequence[Rule], domain: LevelDomain, index: int) -> None:
    for rule in chain:
        if not rule.when(domain):
            continue
        for effect in rule.effects:
            try:
                effect.apply(domain)
            except ConstraintError as exc:
                raise RandomizationFailure(index, effect.field, rule.name, str(exc)) from exc
