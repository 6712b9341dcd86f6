"""Composable query predicates for the record store.

A predicate describes *what* to match, independent of the query language.
``to_mongo()`` translates it for Motor/Beanie; ``matches()`` evaluates it
against a plain document dict (the shape stored in MongoDB, e.g. with
``createdAt`` and ``loanamount`` keys).
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class Predicate:
    def to_mongo(self) -> Dict[str, Any]:
        raise NotImplementedError

    def matches(self, document: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def __and__(self, other: "Predicate") -> "Predicate":
        return And.of(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return Or.of(self, other)


class MatchAll(Predicate):
    """The unconstrained predicate."""

    def to_mongo(self) -> Dict[str, Any]:
        return {}

    def matches(self, document: Mapping[str, Any]) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MatchAll)

    def __hash__(self) -> int:
        return hash(MatchAll)

    def __repr__(self) -> str:
        return "MatchAll()"


class Eq(Predicate):
    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value

    def to_mongo(self) -> Dict[str, Any]:
        return {self.field: self.value}

    def matches(self, document: Mapping[str, Any]) -> bool:
        return _plain(document.get(self.field)) == _plain(self.value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Eq) and (self.field, self.value) == (other.field, other.value)

    def __hash__(self) -> int:
        return hash(("Eq", self.field, str(self.value)))

    def __repr__(self) -> str:
        return f"Eq({self.field!r}, {self.value!r})"


class Range(Predicate):
    """Inclusive range; either bound may be omitted."""

    def __init__(self, field: str, gte: Any = None, lte: Any = None):
        if gte is None and lte is None:
            raise ValueError("Range needs at least one bound")
        self.field = field
        self.gte = gte
        self.lte = lte

    @property
    def is_empty(self) -> bool:
        return self.gte is not None and self.lte is not None and self.gte > self.lte

    def to_mongo(self) -> Dict[str, Any]:
        bounds: Dict[str, Any] = {}
        if self.gte is not None:
            bounds["$gte"] = self.gte
        if self.lte is not None:
            bounds["$lte"] = self.lte
        return {self.field: bounds}

    def matches(self, document: Mapping[str, Any]) -> bool:
        value = document.get(self.field)
        if value is None:
            return False
        try:
            if self.gte is not None and value < self.gte:
                return False
            if self.lte is not None and value > self.lte:
                return False
        except TypeError:
            return False
        return True

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Range) and (self.field, self.gte, self.lte) == (other.field, other.gte, other.lte)

    def __hash__(self) -> int:
        return hash(("Range", self.field, self.gte, self.lte))

    def __repr__(self) -> str:
        return f"Range({self.field!r}, gte={self.gte!r}, lte={self.lte!r})"


class Regex(Predicate):
    """Regular-expression match. Callers are responsible for escaping user input."""

    def __init__(self, field: str, pattern: str, ignore_case: bool = True):
        self.field = field
        self.pattern = pattern
        self.ignore_case = ignore_case

    def to_mongo(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {"$regex": self.pattern}
        if self.ignore_case:
            spec["$options"] = "i"
        return {self.field: spec}

    def matches(self, document: Mapping[str, Any]) -> bool:
        value = document.get(self.field)
        if value is None:
            return False
        flags = re.IGNORECASE if self.ignore_case else 0
        return re.search(self.pattern, str(value), flags) is not None

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Regex) and (self.field, self.pattern, self.ignore_case) == (
            other.field, other.pattern, other.ignore_case
        )

    def __hash__(self) -> int:
        return hash(("Regex", self.field, self.pattern, self.ignore_case))

    def __repr__(self) -> str:
        return f"Regex({self.field!r}, {self.pattern!r})"


class _Compound(Predicate):
    operator = ""

    def __init__(self, clauses: Iterable[Predicate]):
        self.clauses: Tuple[Predicate, ...] = tuple(clauses)

    @classmethod
    def of(cls, *clauses: Predicate) -> Predicate:
        flat: List[Predicate] = []
        for clause in clauses:
            if isinstance(clause, cls):
                flat.extend(clause.clauses)
            else:
                flat.append(clause)
        return cls(flat)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.clauses == other.clauses

    def __hash__(self) -> int:
        return hash((self.operator, self.clauses))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(repr(c) for c in self.clauses)})"


class And(_Compound):
    operator = "$and"

    @classmethod
    def of(cls, *clauses: Predicate) -> Predicate:
        kept = [c for c in clauses if not isinstance(c, MatchAll)]
        if not kept:
            return MatchAll()
        if len(kept) == 1:
            return kept[0]
        return super().of(*kept)

    def to_mongo(self) -> Dict[str, Any]:
        parts = [clause.to_mongo() for clause in self.clauses]
        merged: Dict[str, Any] = {}
        for part in parts:
            if any(key in merged for key in part):
                return {"$and": parts}
            merged.update(part)
        return merged

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(clause.matches(document) for clause in self.clauses)


class Or(_Compound):
    operator = "$or"

    def to_mongo(self) -> Dict[str, Any]:
        return {"$or": [clause.to_mongo() for clause in self.clauses]}

    def matches(self, document: Mapping[str, Any]) -> bool:
        return any(clause.matches(document) for clause in self.clauses)


def all_of(clauses: Iterable[Optional[Predicate]]) -> Predicate:
    return And.of(*[c for c in clauses if c is not None])


def _plain(value: Any) -> Any:
    # Enum members compare by their stored value
    return getattr(value, "value", value)


__all__ = [
    "Predicate",
    "MatchAll",
    "Eq",
    "Range",
    "Regex",
    "And",
    "Or",
    "all_of",
]
