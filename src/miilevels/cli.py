"""
miilevels: convert the game's level table between binary and JSON, or build a
randomized one.

    miilevels disassemble levels.bin [levels.json] [--compact]
    miilevels assemble levels.json [levels.bin] [--rules FILE]
    miilevels randomize levels.bin [out.bin] [--seed N] [--rules FILE]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .errors import MiiLevelsError
from .randomize import new_seed, randomize_table
from .rules import DEFAULT_RULESET, RuleSet, load_ruleset
from .table import decode_table, encode_table, table_from_text, table_to_text
from .validate import validate_table

PROG = "miilevels"


def parse_int(s: str) -> int:
    s = s.strip().lower()
    if s.startswith("0x"):
        return int(s, 16)
    return int(s, 10)


def _warn(message: str) -> None:
    print(f"{PROG}: WARNING: {message}", file=sys.stderr)


def _note(message: str) -> None:
    print(f"{PROG}: {message}", file=sys.stderr)


def _ruleset(path: Optional[str]) -> RuleSet:
    ruleset = load_ruleset(Path(path)) if path else DEFAULT_RULESET
    _note(f"using {ruleset.describe()}")
    return ruleset


def _write_output(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_bytes(data)
        tmp.replace(path)
    finally:
        if tmp.exists():
            tmp.unlink()


def cmd_assemble(args: argparse.Namespace) -> int:
    src = Path(args.input)
    table = table_from_text(src.read_text(encoding="utf-8"), source=str(src))
    ruleset = _ruleset(args.rules)
    for warning in validate_table(table, ruleset):
        _warn(str(warning))

    out = Path(args.output) if args.output else src.with_suffix(".bin")
    _write_output(out, encode_table(table))
    return 0


def cmd_disassemble(args: argparse.Namespace) -> int:
    src = Path(args.input)
    table = decode_table(src.read_bytes())
    out = Path(args.output) if args.output else src.with_suffix(".json")
    _write_output(out, table_to_text(table, compact=args.compact).encode("utf-8"))
    return 0


def cmd_randomize(args: argparse.Namespace) -> int:
    src = Path(args.input)
    length = len(decode_table(src.read_bytes()))
    ruleset = _ruleset(args.rules)

    seed = args.seed if args.seed is not None else new_seed()
    print(f"seed: {seed}")
    table = randomize_table(length, seed, ruleset)

    # Generated tables are correct by construction; anything here is a rule gap.
    for warning in validate_table(table, ruleset):
        _warn(str(warning))

    out = Path(args.output) if args.output else src.with_name(f"{src.stem}_{seed}{src.suffix}")
    _write_output(out, encode_table(table))
    return 0


def _seed(text: str) -> int:
    try:
        value = parse_int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid seed {text!r}") from None
    if value < 0 or value >= 1 << 64:
        raise argparse.ArgumentTypeError("seed must be within 0..2**64-1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description="Edit and randomize the level table.")
    sub = parser.add_subparsers(dest="command", required=True)

    asm = sub.add_parser("assemble", help="JSON level list -> binary table.")
    asm.add_argument("input", help="JSON level list.")
    asm.add_argument("output", nargs="?", default=None, help="Output table (defaults to INPUT with .bin).")
    asm.add_argument("--rules", default=None, help="JSON rule set used for validation warnings.")
    asm.set_defaults(func=cmd_assemble)

    dis = sub.add_parser("disassemble", help="Binary table -> JSON level list.")
    dis.add_argument("input", help="Binary level table.")
    dis.add_argument("output", nargs="?", default=None, help="Output JSON (defaults to INPUT with .json).")
    dis.add_argument("-c", "--compact", action="store_true", help="Write JSON without indentation.")
    dis.set_defaults(func=cmd_disassemble)

    rnd = sub.add_parser("randomize", help="Binary table -> randomized binary table.")
    rnd.add_argument("input", help="Binary level table; its record count sets the output size.")
    rnd.add_argument(
        "output", nargs="?", default=None, help="Output table (defaults to <stem>_<seed><suffix> next to INPUT)."
    )
    rnd.add_argument("--seed", type=_seed, default=None, help="64-bit seed (decimal or 0x..); random if omitted.")
    rnd.add_argument("--rules", default=None, help="JSON rule set overriding the built-in rules.")
    rnd.set_defaults(func=cmd_randomize)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        return args.func(args)
    except OSError as exc:
        print(f"{PROG}: ERROR: {exc}", file=sys.stderr)
        return 1
    except MiiLevelsError as exc:
        print(f"{PROG}: ERROR: {exc}", file=sys.stderr)
        return 2