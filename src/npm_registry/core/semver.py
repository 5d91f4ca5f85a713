"""npm-flavoured semantic versioning.

Covers what the analysis tools need: parsing, ordering, ``diff`` and
range satisfaction with npm's range grammar (exact, ``^``, ``~``,
x-ranges, comparator sets, hyphen ranges and ``||``).
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

_FULL_RE = re.compile(
    r"^\s*[=v]*\s*(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.\-]+))?(?:\+([0-9A-Za-z.\-]+))?\s*$"
)
_PARTIAL_RE = re.compile(
    r"^[=v]*(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?(?:-([0-9A-Za-z.\-]+))?(?:\+[0-9A-Za-z.\-]+)?$"
)
_COERCE_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")
_OPERATOR_RE = re.compile(r"^(\^|~>?|>=|<=|>|<|=)?(.*)$")
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")


def _prerelease(text: Optional[str]) -> tuple:
    if not text:
        return ()
    return tuple(int(p) if p.isdigit() else p for p in text.split("."))


@functools.total_ordering
@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple = ()

    @property
    def core(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            base += "-" + ".".join(str(p) for p in self.prerelease)
        return base

    def __lt__(self, other: "SemVer") -> bool:
        return _compare(self, other) < 0


def _compare(a: SemVer, b: SemVer) -> int:
    if a.core != b.core:
        return -1 if a.core < b.core else 1
    # A release ranks above any of its prereleases
    if not a.prerelease and b.prerelease:
        return 1
    if a.prerelease and not b.prerelease:
        return -1
    for x, y in zip(a.prerelease, b.prerelease):
        if x == y:
            continue
        if isinstance(x, int) and isinstance(y, str):
            return -1
        if isinstance(x, str) and isinstance(y, int):
            return 1
        return -1 if x < y else 1
    if len(a.prerelease) == len(b.prerelease):
        return 0
    return -1 if len(a.prerelease) < len(b.prerelease) else 1


def parse(version: Union[str, SemVer, None]) -> Optional[SemVer]:
    """Parse a full version like ``1.2.3`` or ``v1.2.3-beta.1``. None if invalid."""
    if isinstance(version, SemVer):
        return version
    if not version:
        return None
    m = _FULL_RE.match(version)
    if not m:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), _prerelease(m.group(4)))


def valid(version: Optional[str]) -> Optional[str]:
    parsed = parse(version)
    return str(parsed) if parsed else None


def coerce(version: Optional[str]) -> Optional[SemVer]:
    """Pull the first ``major[.minor[.patch]]`` out of arbitrary text (``^18`` -> 18.0.0)."""
    if not version:
        return None
    m = _COERCE_RE.search(version)
    if not m:
        return None
    return SemVer(int(m.group(1)), int(m.group(2) or 0), int(m.group(3) or 0))


def _require(version: Union[str, SemVer]) -> SemVer:
    parsed = parse(version)
    if parsed is None:
        raise ValueError(f"Invalid version: {version}")
    return parsed


def compare(a: Union[str, SemVer], b: Union[str, SemVer]) -> int:
    return _compare(_require(a), _require(b))


def gt(a: Union[str, SemVer], b: Union[str, SemVer]) -> bool:
    return compare(a, b) > 0


def sort_desc(versions: Iterable[str]) -> list[str]:
    """Newest first. Invalid version strings are dropped."""
    valid_versions = [v for v in versions if parse(v) is not None]
    return sorted(valid_versions, key=parse, reverse=True)


def sort_desc_loose(versions: Iterable[str]) -> list[str]:
    """Newest first; strings that are not versions follow in reverse lexical order."""
    versions = list(versions)
    invalid = sorted((v for v in versions if parse(v) is None), reverse=True)
    return sort_desc(versions) + invalid


def diff(a: Union[str, SemVer], b: Union[str, SemVer]) -> Optional[str]:
    """Kind of change between two versions, or None when they are equal.

    One of ``major``, ``premajor``, ``minor``, ``preminor``, ``patch``,
    ``prepatch`` or ``prerelease``.
    """
    v1, v2 = _require(a), _require(b)
    cmp = _compare(v1, v2)
    if cmp == 0:
        return None
    high, low = (v1, v2) if cmp > 0 else (v2, v1)

    if low.prerelease and not high.prerelease:
        if not low.patch and not low.minor:
            return "major"
        if low.core == high.core:
            if low.minor and not low.patch:
                return "minor"
            return "patch"

    prefix = "pre" if high.prerelease else ""
    if v1.major != v2.major:
        return prefix + "major"
    if v1.minor != v2.minor:
        return prefix + "minor"
    if v1.patch != v2.patch:
        return prefix + "patch"
    return "prerelease"


# ─── Ranges ──────────────────────────────────────────────────────────────────


def _partial(text: str) -> Optional[tuple[Optional[int], Optional[int], Optional[int], tuple]]:
    m = _PARTIAL_RE.match(text)
    if not m:
        return None

    def num(group: Optional[str]) -> Optional[int]:
        if group is None or group in ("x", "X", "*"):
            return None
        return int(group)

    major, minor, patch = num(m.group(1)), num(m.group(2)), num(m.group(3))
    if major is None:
        minor = patch = None
    elif minor is None:
        patch = None
    pre = _prerelease(m.group(4)) if patch is not None else ()
    return major, minor, patch, pre


def _desugar(token: str) -> list[tuple[str, SemVer]]:
    """Expand one range token into primitive ``(operator, version)`` comparators."""
    m = _OPERATOR_RE.match(token)
    op, rest = m.group(1) or "", m.group(2)
    if op == "~>":
        op = "~"
    if rest in ("", "*", "x", "X", "latest"):
        return []

    parts = _partial(rest)
    if parts is None:
        raise ValueError(f"Invalid comparator: {token}")
    major, minor, patch, pre = parts

    if major is None:
        if op in ("<", ">"):
            return [("<", SemVer(0, 0, 0, (0,)))]
        return []

    low = SemVer(major, minor or 0, patch or 0, pre)

    if op == "^":
        if major > 0 or minor is None:
            upper = SemVer(major + 1, 0, 0)
        elif minor > 0 or patch is None:
            upper = SemVer(0, minor + 1, 0)
        else:
            upper = SemVer(0, 0, patch + 1)
        return [(">=", low), ("<", upper)]

    if op == "~":
        upper = SemVer(major + 1, 0, 0) if minor is None else SemVer(major, minor + 1, 0)
        return [(">=", low), ("<", upper)]

    if op in ("", "="):
        if minor is None:
            return [(">=", low), ("<", SemVer(major + 1, 0, 0))]
        if patch is None:
            return [(">=", low), ("<", SemVer(major, minor + 1, 0))]
        return [("=", low)]

    if op == ">":
        if minor is None:
            return [(">=", SemVer(major + 1, 0, 0))]
        if patch is None:
            return [(">=", SemVer(major, minor + 1, 0))]
        return [(">", low)]

    if op == "<=":
        if minor is None:
            return [("<", SemVer(major + 1, 0, 0))]
        if patch is None:
            return [("<", SemVer(major, minor + 1, 0))]
        return [("<=", low)]

    return [(op, low)]


def _hyphen(start: str, end: str) -> list[tuple[str, SemVer]]:
    comparators: list[tuple[str, SemVer]] = []
    lo, hi = _partial(start), _partial(end)
    if lo is None or hi is None:
        raise ValueError(f"Invalid hyphen range: {start} - {end}")
    if lo[0] is not None:
        comparators.append((">=", SemVer(lo[0], lo[1] or 0, lo[2] or 0, lo[3])))
    major, minor, patch, pre = hi
    if major is not None:
        if minor is None:
            comparators.append(("<", SemVer(major + 1, 0, 0)))
        elif patch is None:
            comparators.append(("<", SemVer(major, minor + 1, 0)))
        else:
            comparators.append(("<=", SemVer(major, minor, patch, pre)))
    return comparators


def _comparator_set(part: str) -> list[tuple[str, SemVer]]:
    hyphen = _HYPHEN_RE.match(part)
    if hyphen:
        return _hyphen(hyphen.group(1), hyphen.group(2))
    normalized = re.sub(r"(\^|~>?|>=|<=|>|<|=)\s+", r"\1", part.strip())
    comparators: list[tuple[str, SemVer]] = []
    for token in normalized.split():
        comparators.extend(_desugar(token))
    return comparators


def _test(version: SemVer, op: str, target: SemVer) -> bool:
    c = _compare(version, target)
    if op == ">":
        return c > 0
    if op == ">=":
        return c >= 0
    if op == "<":
        return c < 0
    if op == "<=":
        return c <= 0
    return c == 0


def satisfies(version: Union[str, SemVer], range_spec: str) -> bool:
    """True when ``version`` falls inside the npm range ``range_spec``.

    Prereleases only match comparator sets that name a prerelease of the
    same ``major.minor.patch``, as npm does.
    """
    v = parse(version)
    if v is None:
        return False
    for part in (range_spec or "").split("||"):
        try:
            comparators = _comparator_set(part)
        except ValueError:
            continue
        if not all(_test(v, op, target) for op, target in comparators):
            continue
        if v.prerelease and not any(t.prerelease and t.core == v.core for _, t in comparators):
            continue
        return True
    return False


def valid_range(range_spec: str) -> bool:
    for part in (range_spec or "").split("||"):
        try:
            _comparator_set(part)
        except ValueError:
            return False
    return True
