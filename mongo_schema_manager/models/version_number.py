"""
Four-component version identifiers.

A version identifier is ``major.minor.patch.enumerator_version``. The first
three components select the schema file for a collection; the fourth selects
the enumerator snapshot used to preprocess it.

Examples:
    >>> v = VersionNumber.parse("1.1.0.1")
    >>> v.short_form()
    '1.1.0'
    >>> v.enumerator_version
    1
    >>> VersionNumber.parse("1.0.0.0") < v
    True
"""

import re
from dataclasses import dataclass
from typing import ClassVar

from mongo_schema_manager.exceptions import FormatError

_COMPONENT = r"(0|[1-9][0-9]*)"
_VERSION_PATTERN = re.compile(r"\.".join([_COMPONENT] * 4))


@dataclass(frozen=True, order=True)
class VersionNumber:
    """
    Immutable version identifier with a total lexicographic order.

    Field order defines comparison order, so ``order=True`` gives exactly
    (major, minor, patch, enumerator_version) lexicographic comparison.

    Attributes:
        major: Major schema version
        minor: Minor schema version
        patch: Patch schema version
        enumerator_version: Index of the enumerator snapshot to use
    """

    major: int
    minor: int
    patch: int
    enumerator_version: int

    ZERO: ClassVar["VersionNumber"]

    def __post_init__(self) -> None:
        for component in (self.major, self.minor, self.patch, self.enumerator_version):
            if not isinstance(component, int) or component < 0:
                raise FormatError(
                    f"Version components must be non-negative integers, got {component!r}"
                )

    @classmethod
    def parse(cls, text: str) -> "VersionNumber":
        """
        Parse a ``M.m.p.e`` string.

        Args:
            text: Version string, exactly four dot-separated non-negative integers
                without leading zeros

        Returns:
            Parsed VersionNumber

        Raises:
            FormatError: If text is not a well-formed 4-component version
        """
        if not isinstance(text, str):
            raise FormatError(f"Version must be a string, got {type(text).__name__}")

        match = _VERSION_PATTERN.fullmatch(text)
        if match is None:
            raise FormatError(
                f"Invalid version string {text!r}: expected 'major.minor.patch.enumerators'"
            )

        return cls(*(int(part) for part in match.groups()))

    def short_form(self) -> str:
        """Render ``major.minor.patch``, used to locate the schema file."""
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.enumerator_version}"


VersionNumber.ZERO = VersionNumber(0, 0, 0, 0)
