"""
Semantic version helpers.

Only the small subset of npm range syntax that peer dependency metadata
commonly uses is understood here. Anything else is reported as unsatisfied.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from packaging import version as pkg_version

from .models import VersionDelta


Triple = Tuple[int, int, int]

_PARTIAL_RE = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?(?:[-+][0-9A-Za-z.+-]*)?$"
)
_DECLARED_PREFIX_RE = re.compile(r"^(?:\^|~>?|>=|=)?\s*")
# Full triples with npm tags such as "19.0.0-rc-66855b96", which PEP 440 rejects.
_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+][0-9A-Za-z.+-]+)?$")


def parse_version(value: Optional[str]) -> Optional[Triple]:
    """Parse a concrete version into a (major, minor, patch) triple.

    Full triples may carry npm prerelease or build tags. Shorter forms such
    as ``18`` or ``18.2`` go through ``packaging``, which is stricter than
    semver here: epochs, post, dev and local segments, PEP 440 prereleases
    without a ``-`` and more than three release components are all rejected.
    """
    if not value:
        return None
    cleaned = value.strip().lstrip("=").strip()
    if cleaned[:1] in ("v", "V"):
        cleaned = cleaned[1:]
    match = _SEMVER_RE.match(cleaned)
    if match:
        major, minor, patch = (int(part) for part in match.groups())
        return major, minor, patch
    try:
        parsed = pkg_version.Version(cleaned)
    except pkg_version.InvalidVersion:
        return None
    if (
        parsed.epoch
        or parsed.post is not None
        or parsed.dev is not None
        or parsed.local is not None
        or len(parsed.release) > 3
        or (parsed.pre is not None and "-" not in cleaned)
    ):
        return None
    release = tuple(parsed.release) + (0, 0, 0)
    return release[0], release[1], release[2]


def _parse_partial(value: str) -> Optional[Tuple[Optional[int], ...]]:
    match = _PARTIAL_RE.match(value.strip())
    if not match:
        return None
    parts = []
    for group in match.groups():
        if group is None or group in ("x", "X", "*"):
            parts.append(None)
        else:
            parts.append(int(group))
    # Components after a wildcard are wildcards too.
    for index, part in enumerate(parts):
        if part is None:
            return tuple(parts[:index]) + (None,) * (3 - index)
    return tuple(parts)


def declared_base_version(value: Optional[str]) -> Optional[Triple]:
    """Reduce a declared dependency spec such as ``^18.3.1`` to its base triple."""
    if not value:
        return None
    stripped = _DECLARED_PREFIX_RE.sub("", value.strip(), count=1)
    if not stripped or " " in stripped or "||" in stripped:
        return None
    partial = _parse_partial(stripped)
    if partial is None or partial[0] is None:
        return None
    major, minor, patch = (part or 0 for part in partial)
    return major, minor, patch


def version_delta(current: Triple, latest: Triple) -> VersionDelta:
    if current[0] != latest[0]:
        return VersionDelta.MAJOR
    return VersionDelta.MINOR_OR_PATCH


def _upper_bound(lower: Tuple[Optional[int], ...], caret: bool) -> Triple:
    major, minor, patch = lower
    if major is None:
        return (10 ** 9, 0, 0)
    if caret:
        if major > 0 or minor is None:
            return (major + 1, 0, 0)
        if minor > 0 or patch is None:
            return (0, minor + 1, 0)
        return (0, 0, patch + 1)
    if minor is None:
        return (major + 1, 0, 0)
    return (major, minor + 1, 0)


def _satisfies_clause(current: Triple, clause: str) -> bool:
    clause = clause.strip()
    if clause in ("", "*", "x", "X", "latest"):
        return True
    if clause.startswith(">="):
        partial = _parse_partial(clause[2:])
        if partial is None:
            return False
        return current >= tuple(part or 0 for part in partial)
    if clause.startswith("^") or clause.startswith("~"):
        caret = clause.startswith("^")
        operand = clause[1:].lstrip(">")
        partial = _parse_partial(operand)
        if partial is None:
            return False
        lower = tuple(part or 0 for part in partial)
        return lower <= current < _upper_bound(partial, caret)
    partial = _parse_partial(clause.lstrip("="))
    if partial is None:
        return False
    for wanted, actual in zip(partial, current):
        if wanted is None:
            return True
        if wanted != actual:
            return False
    return True


def satisfies(current: Triple, range_spec: str) -> bool:
    """Check ``current`` against ``^``, ``~``, exact, ``>=`` and ``||`` ranges."""
    return any(_satisfies_clause(current, clause) for clause in range_spec.split("||"))
