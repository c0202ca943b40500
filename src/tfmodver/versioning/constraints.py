"""Version constraint expressions (``>= 1.2.0, < 2.0.0``, ``~> 1.4``)."""

import re
from dataclasses import dataclass
from collections.abc import Sequence
from typing import Iterator, List, Optional

import semantic_version

from tfmodver.errors import InvalidConstraintError, InvalidVersionError
from tfmodver.versioning.comparator import parse_version
from tfmodver.versioning.models import Operator

# Longest operators first so ">=" is not read as ">".
_CONSTRAINT_RE = re.compile(r"^(~>|!=|>=|<=|=|>|<)\s*(.*)$")


@dataclass(frozen=True)
class Constraint:
    """A single operator and version pair.

    ``original`` keeps the version literal as written; the precision of a
    pessimistic constraint is derived from it, not from the parsed version.
    """
    operator: Operator
    version: semantic_version.Version
    original: str

    @property
    def precision(self) -> int:
        """Number of dot-separated components in the written version core."""
        core = re.split(r"[-+]", self.original, maxsplit=1)[0]
        return core.count(".") + 1

    def matches(self, version: Optional[semantic_version.Version]) -> bool:
        """Return True if ``version`` satisfies this constraint."""
        if version is None:
            return False
        cmp = (version > self.version) - (version < self.version)
        op = self.operator
        if op is Operator.EQ:
            return cmp == 0
        if op is Operator.NE:
            return cmp != 0
        if op is Operator.GT:
            return cmp > 0
        if op is Operator.GE:
            return cmp >= 0
        if op is Operator.LT:
            return cmp < 0
        if op is Operator.LE:
            return cmp <= 0
        if op is Operator.PESSIMISTIC:
            return cmp >= 0 and version < self.upper_bound()
        return False

    def upper_bound(self) -> semantic_version.Version:
        """Exclusive upper bound of a pessimistic constraint.

        ``~> 1`` allows anything below the next major; ``~> 1.2`` and
        ``~> 1.2.3`` allow anything below the next minor.
        """
        if self.precision == 1:
            return semantic_version.Version(major=self.version.major + 1, minor=0, patch=0)
        return semantic_version.Version(major=self.version.major, minor=self.version.minor + 1, patch=0)

    def __str__(self) -> str:
        return f"{self.operator.value} {self.original}"


class Constraints(Sequence):
    """An ordered set of constraints combined with AND semantics.

    An empty set matches every version.
    """

    def __init__(self, constraints: Optional[List[Constraint]] = None):
        self._constraints: List[Constraint] = list(constraints or [])

    def __getitem__(self, index):
        return self._constraints[index]

    def __len__(self) -> int:
        return len(self._constraints)

    def __iter__(self) -> Iterator[Constraint]:
        return iter(self._constraints)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Constraints):
            return NotImplemented
        return self._constraints == other._constraints

    def matches(self, version: Optional[semantic_version.Version]) -> bool:
        return all(c.matches(version) for c in self._constraints)

    def matches_string(self, version: str) -> bool:
        """Like ``matches`` but for a version string; invalid strings never match."""
        try:
            parsed = parse_version(version)
        except InvalidVersionError:
            return False
        return self.matches(parsed)

    def filter(self, versions: Sequence[str]) -> List[str]:
        """Return the versions that satisfy every constraint, order preserved."""
        if not self._constraints:
            return list(versions)
        return [v for v in versions if self.matches_string(v)]

    def __str__(self) -> str:
        return ", ".join(str(c) for c in self._constraints)

    def __repr__(self) -> str:
        return f"Constraints({str(self)!r})"


def parse_constraint(expr: str) -> Constraint:
    """Parse a single constraint such as ``">= 1.2.0"`` or ``"~>1.4"``.

    Raises:
        InvalidConstraintError: on empty input, an unknown operator, a
            missing version or an unparseable version.
    """
    expr = (expr or "").strip()
    if not expr:
        raise InvalidConstraintError("empty constraint expression")

    m = _CONSTRAINT_RE.match(expr)
    if not m:
        raise InvalidConstraintError(f"invalid constraint expression: {expr!r}")

    literal = m.group(2).strip()
    if not literal:
        raise InvalidConstraintError(f"missing version in constraint: {expr!r}")
    try:
        version = parse_version(literal)
    except InvalidVersionError as exc:
        raise InvalidConstraintError(f"invalid version {literal!r} in constraint {expr!r}") from exc

    return Constraint(operator=Operator(m.group(1)), version=version, original=literal)


def parse_constraints(expr: str) -> Constraints:
    """Parse a comma separated list of constraints.

    Lines are treated as additional separators so constraint files may hold
    one clause per line. The whole expression is rejected on the first
    invalid clause.

    Raises:
        InvalidConstraintError: if the expression is empty or any clause is invalid.
    """
    expr = (expr or "").strip()
    if not expr:
        raise InvalidConstraintError("empty constraints expression")

    joined = ",".join(line for line in expr.splitlines() if line.strip())
    return Constraints([parse_constraint(part) for part in joined.split(",")])
