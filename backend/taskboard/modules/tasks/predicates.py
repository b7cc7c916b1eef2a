# taskboard/modules/tasks/predicates.py
"""
Declarative filter conditions over task records.

A predicate can be evaluated against a task object (`matches`) or compiled
to a MongoDB filter document (`to_mongo`), so the in-memory and Mongo
repositories agree on what a query selects.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Sequence, Tuple

# Stored field name -> attribute name on TaskInDB
_ATTRIBUTE_NAMES = {"_id": "id"}

# ASCII word class, so the in-memory and Mongo stores draw the same token boundaries
WORD_CHAR = "[A-Za-z0-9_]"


def _field_value(task: Any, field: str) -> Any:
    return getattr(task, _ATTRIBUTE_NAMES.get(field, field), None)


class Predicate(ABC):
    @abstractmethod
    def matches(self, task: Any) -> bool:
        ...

    @abstractmethod
    def to_mongo(self) -> Dict[str, Any]:
        ...

    def __and__(self, other: "Predicate") -> "Predicate":
        return And(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return Or(self, other)


class MatchAll(Predicate):
    def matches(self, task: Any) -> bool:
        return True

    def to_mongo(self) -> Dict[str, Any]:
        return {}

    def __repr__(self) -> str:
        return "MatchAll()"


class FieldEquals(Predicate):
    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value

    def matches(self, task: Any) -> bool:
        return _field_value(task, self.field) == self.value

    def to_mongo(self) -> Dict[str, Any]:
        return {self.field: self.value}

    def __repr__(self) -> str:
        return f"FieldEquals({self.field!r}, {self.value!r})"


class TextSearch(Predicate):
    """
    Case-insensitive whole-token match: true iff at least one token appears
    in at least one of `fields`. List fields (tags) match on any element.
    """

    def __init__(self, tokens: Sequence[str], fields: Sequence[str] = ("title", "description", "tags")):
        self.tokens: Tuple[str, ...] = tuple(dict.fromkeys(t for t in tokens if t))
        self.fields: Tuple[str, ...] = tuple(fields)
        self._patterns = [self.token_pattern(t) for t in self.tokens]
        self._compiled = [re.compile(p, re.IGNORECASE) for p in self._patterns]

    @classmethod
    def from_text(cls, text: str, **kwargs) -> "TextSearch":
        return cls(text.split(), **kwargs)

    @staticmethod
    def token_pattern(token: str) -> str:
        # Lookarounds instead of \b so tokens like "c++" still match whole.
        return rf"(?<!{WORD_CHAR}){re.escape(token)}(?!{WORD_CHAR})"

    def _values(self, task: Any) -> Iterable[str]:
        for field in self.fields:
            value = _field_value(task, field)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                yield from (v for v in value if isinstance(v, str))
            elif isinstance(value, str):
                yield value

    def matches(self, task: Any) -> bool:
        values = list(self._values(task))
        return any(regex.search(value) for regex in self._compiled for value in values)

    def to_mongo(self) -> Dict[str, Any]:
        clauses: List[Dict[str, Any]] = [
            {field: {"$regex": pattern, "$options": "i"}}
            for pattern in self._patterns
            for field in self.fields
        ]
        if not clauses:
            return {"_id": {"$exists": False}}
        return {"$or": clauses}

    def __repr__(self) -> str:
        return f"TextSearch({list(self.tokens)!r})"


class _Compound(Predicate):
    def __init__(self, *parts: Predicate):
        flattened: List[Predicate] = []
        for part in parts:
            if isinstance(part, type(self)):
                flattened.extend(part.parts)
            else:
                flattened.append(part)
        self.parts: Tuple[Predicate, ...] = tuple(flattened)

    def _compiled_parts(self) -> List[Dict[str, Any]]:
        return [p.to_mongo() for p in self.parts]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(map(repr, self.parts))})"


class And(_Compound):
    def __init__(self, *parts: Predicate):
        super().__init__(*(p for p in parts if not isinstance(p, MatchAll)))

    def matches(self, task: Any) -> bool:
        return all(p.matches(task) for p in self.parts)

    def to_mongo(self) -> Dict[str, Any]:
        compiled = [c for c in self._compiled_parts() if c]
        if not compiled:
            return {}
        if len(compiled) == 1:
            return compiled[0]
        return {"$and": compiled}


class Or(_Compound):
    def matches(self, task: Any) -> bool:
        return any(p.matches(task) for p in self.parts)

    def to_mongo(self) -> Dict[str, Any]:
        if any(isinstance(p, MatchAll) for p in self.parts):
            return {}
        compiled = self._compiled_parts()
        if len(compiled) == 1:
            return compiled[0]
        return {"$or": compiled}
