"""Validation of role action patterns against the provider operation catalog."""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Iterable, Iterator


class InvalidArgumentError(ValueError):
    """Raised when the validator is called with a missing or malformed argument."""


class OperationCatalog:
    """Read-only set of registered provider operation ids.

    Built once per run. Membership is a hash lookup; prefix queries use a
    sorted copy of the ids and a binary search.
    """

    def __init__(self, operations: Iterable[str] = ()) -> None:
        ids = frozenset(operations)
        for op in ids:
            if not isinstance(op, str):
                raise InvalidArgumentError(f"Operation id must be a string, got {type(op).__name__}")
        self._ids = ids
        self._sorted = tuple(sorted(ids))

    def __contains__(self, operation: object) -> bool:
        return operation in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._sorted)

    def __repr__(self) -> str:
        return f"OperationCatalog({len(self._ids)} operations)"

    def has_prefix(self, prefix: str) -> bool:
        """Return True if any operation id starts with ``prefix``."""
        i = bisect_left(self._sorted, prefix)
        return i < len(self._sorted) and self._sorted[i].startswith(prefix)

    def namespaces(self) -> list[str]:
        """Return the sorted provider namespaces present in the catalog."""
        return sorted({op.split("/", 1)[0] for op in self._sorted})


def is_valid_action(pattern: str, catalog: OperationCatalog) -> bool:
    """Return True if ``pattern`` denotes at least one operation in ``catalog``.

    Three forms are recognised, tried in this order:

    1. an exact operation id;
    2. ``<prefix>/*``, matching ids that start with ``<prefix>/``;
    3. ``<prefix>*``, matching ids that start with ``<prefix>`` with no
       separator required (so ``Foo*`` matches ``Foobar/read``).

    Matching is case-sensitive.
    """
    if not isinstance(catalog, OperationCatalog):
        raise InvalidArgumentError("catalog must be an OperationCatalog")
    if not isinstance(pattern, str):
        raise InvalidArgumentError(f"action pattern must be a string, got {type(pattern).__name__}")
    if not pattern:
        raise InvalidArgumentError("action pattern must not be empty")

    if pattern in catalog:
        return True
    if pattern.endswith("/*"):
        return catalog.has_prefix(pattern[:-2] + "/")
    if pattern.endswith("*"):
        return catalog.has_prefix(pattern[:-1])
    return False


@dataclass
class ActionValidation:
    """Patterns from one action list, partitioned into valid and invalid."""

    valid: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.invalid)

    def to_dict(self) -> dict[str, list[str]]:
        return {"valid": list(self.valid), "invalid": list(self.invalid)}


def validate_actions(patterns: Iterable[str], catalog: OperationCatalog) -> ActionValidation:
    """Classify every pattern, keeping input order within each partition."""
    result = ActionValidation()
    for pattern in patterns:
        if is_valid_action(pattern, catalog):
            result.valid.append(pattern)
        else:
            result.invalid.append(pattern)
    return result
