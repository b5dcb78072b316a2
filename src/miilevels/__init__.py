"""Codec, validator and randomizer for the game's fixed-size level table."""

from .codes import Behavior, LevelType, Map
from .constraints import ConstrainedSet, ConstrainedValue
from .errors import (
    Conflict,
    ConstraintError,
    EmptySet,
    FormatError,
    MiiLevelsError,
    RandomizationFailure,
    RuleSetError,
    TruncatedRecord,
)
from .randomize import new_seed, randomize_table
from .record import RECORD_SIZE, Level, decode_record, encode_record
from .rules import DEFAULT_RULESET, RuleSet, get_ruleset, load_ruleset
from .table import CANONICAL_LEVEL_COUNT, decode_table, encode_table, table_from_text, table_to_text
from .validate import validate_table

__version__ = "0.3.0"
