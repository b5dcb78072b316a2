from __future__ import annotations


class MiiLevelsError(Exception):
    pass


class FormatError(MiiLevelsError):
    pass


class TruncatedRecord(FormatError):
    pass


class RuleSetError(FormatError):
    pass


class ConstraintError(MiiLevelsError):
    pass


class Conflict(ConstraintError):
    pass


class EmptySet(ConstraintError):
    pass


class RandomizationFailure(MiiLevelsError):
    """A rule chain could not produce a consistent level."""

    def __init__(self, index: int, field: str, rule: str, reason: str) -> None:
        self.index = index
        self.field = field
        self.rule = rule
        self.reason = reason
        super().__init__(f"level {index}: field {field!r} (rule {rule!r}): {reason}")
