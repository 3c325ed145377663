"""
Compiler selection.

A selector pairs a compiler name with an npm-style semver range such as
``^0.4.24`` and resolves it against a list of released versions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import CompilerResolutionError, InvalidVersionRangeError

Version = Tuple[int, int, int]
Comparator = Tuple[str, Version]

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])(?:\.(?P<minor>\d+|[xX*]))?(?:\.(?P<patch>\d+|[xX*]))?$"
)
_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")
_OP_RE = re.compile(r"^(>=|<=|>|<|=|\^|~)?(.*)$")


def _series(major: int, minor: int, last_patch: int) -> List[str]:
    return [f"{major}.{minor}.{p}" for p in range(last_patch + 1)]


# solc releases known offline; newest last within each series
KNOWN_SOLC_RELEASES: Tuple[str, ...] = tuple(
    _series(0, 4, 26)
    + _series(0, 5, 17)
    + _series(0, 6, 12)
    + _series(0, 7, 6)
    + _series(0, 8, 28)
)


def parse_version(text: str) -> Version:
    """Parse ``0.4.24`` (optionally ``v``-prefixed, with ``+commit`` build
    metadata) into a tuple. Pre-releases raise ``ValueError``."""
    m = _VERSION_RE.match(text.strip())
    if not m:
        raise ValueError(f"not a release version: {text!r}")
    if "-" in text.split("+", 1)[0]:
        raise ValueError(f"pre-release versions are not selectable: {text!r}")
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


def _parse_partial(text: str) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    m = _PARTIAL_RE.match(text)
    if not m:
        raise InvalidVersionRangeError(f"invalid version in range: {text!r}")
    parts: List[Optional[int]] = []
    wildcard = False
    for name in ("major", "minor", "patch"):
        raw = m.group(name)
        if raw is None or raw in ("x", "X", "*"):
            wildcard = True
            parts.append(None)
        elif wildcard:
            # 1.x.3 is meaningless
            raise InvalidVersionRangeError(f"invalid version in range: {text!r}")
        else:
            parts.append(int(raw))
    return parts[0], parts[1], parts[2]


def _caret(major, minor, patch) -> List[Comparator]:
    if major is None:
        return []
    if minor is None:
        return [(">=", (major, 0, 0)), ("<", (major + 1, 0, 0))]
    low = (major, minor, patch or 0)
    if major > 0:
        return [(">=", low), ("<", (major + 1, 0, 0))]
    if minor > 0 or patch is None:
        return [(">=", low), ("<", (0, minor + 1, 0))]
    return [(">=", low), ("<", (0, 0, patch + 1))]


def _tilde(major, minor, patch) -> List[Comparator]:
    if major is None:
        return []
    if minor is None:
        return [(">=", (major, 0, 0)), ("<", (major + 1, 0, 0))]
    return [(">=", (major, minor, patch or 0)), ("<", (major, minor + 1, 0))]


def _primitive(op: str, major, minor, patch) -> List[Comparator]:
    if major is None:
        # *, x, >=*: anything; <* and >*: nothing
        return [("<", (0, 0, 0))] if op in ("<", ">") else []
    if op in ("", "="):
        if minor is None:
            return [(">=", (major, 0, 0)), ("<", (major + 1, 0, 0))]
        if patch is None:
            return [(">=", (major, minor, 0)), ("<", (major, minor + 1, 0))]
        return [("=", (major, minor, patch))]
    if op == ">":
        if minor is None:
            return [(">=", (major + 1, 0, 0))]
        if patch is None:
            return [(">=", (major, minor + 1, 0))]
        return [(">", (major, minor, patch))]
    if op == ">=":
        return [(">=", (major, minor or 0, patch or 0))]
    if op == "<":
        return [("<", (major, minor or 0, patch or 0))]
    # <=
    if minor is None:
        return [("<", (major + 1, 0, 0))]
    if patch is None:
        return [("<", (major, minor + 1, 0))]
    return [("<=", (major, minor, patch))]


def _parse_comparator(token: str) -> List[Comparator]:
    m = _OP_RE.match(token)
    op, rest = m.group(1) or "", m.group(2)
    major, minor, patch = _parse_partial(rest)
    if op == "^":
        return _caret(major, minor, patch)
    if op == "~":
        return _tilde(major, minor, patch)
    return _primitive(op, major, minor, patch)


def parse_range(text: str) -> List[List[Comparator]]:
    """Compile a range into OR-ed sets of AND-ed comparators."""
    if not isinstance(text, str):
        raise InvalidVersionRangeError(f"version range must be a string, got {text!r}")
    alternatives: List[List[Comparator]] = []
    for alt in text.split("||"):
        # "> = 1.2" style spacing after operators
        alt = re.sub(r"(>=|<=|>|<|=|\^|~)\s+", r"\1", alt.strip())
        comparators: List[Comparator] = []
        hyphen = re.match(r"^(\S+)\s+-\s+(\S+)$", alt)
        if hyphen:
            comparators += _primitive(">=", *_parse_partial(hyphen.group(1)))
            comparators += _primitive("<=", *_parse_partial(hyphen.group(2)))
        else:
            for token in alt.split():
                comparators += _parse_comparator(token)
        alternatives.append(comparators)
    return alternatives


def _test(op: str, version: Version, bound: Version) -> bool:
    if op == "=":
        return version == bound
    if op == ">":
        return version > bound
    if op == ">=":
        return version >= bound
    if op == "<":
        return version < bound
    return version <= bound


def range_satisfied(compiled: Sequence[Sequence[Comparator]], version: Version) -> bool:
    return any(all(_test(op, version, bound) for op, bound in alt) for alt in compiled)


@dataclass(frozen=True)
class CompilerSelector:
    name: str = "solc"
    version: str = "^0.4.24"

    def __post_init__(self):
        parse_range(self.version)

    def satisfies(self, version: str) -> bool:
        try:
            parsed = parse_version(version)
        except ValueError:
            return False
        return range_satisfied(parse_range(self.version), parsed)

    def resolve(self, available: Optional[Iterable[str]] = None) -> str:
        """Highest release in ``available`` matching the range."""
        candidates = KNOWN_SOLC_RELEASES if available is None else available
        compiled = parse_range(self.version)
        best: Optional[Version] = None
        for text in candidates:
            try:
                parsed = parse_version(text)
            except ValueError:
                continue
            if range_satisfied(compiled, parsed) and (best is None or parsed > best):
                best = parsed
        if best is None:
            raise CompilerResolutionError(
                f"no {self.name} release satisfies {self.version!r}"
            )
        return format_version(best)

    def as_dict(self) -> dict:
        return {self.name: {"version": self.version}}
