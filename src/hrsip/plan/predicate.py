# src/hrsip/plan/predicate.py
"""
Typed filter predicates over a sample's grouping-variable mapping.

Built programmatically from bound values instead of interpolating strings,
so a level containing quotes or operators cannot change the predicate's shape.
`render()` gives the label text (e.g. "substrate=='13C-Glu' & day=='3'").
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Tuple, Union


@dataclass(frozen=True)
class Eq:
    axis: str
    value: str

    def evaluate(self, attributes: Mapping[str, str]) -> bool:
        return attributes.get(self.axis) == self.value

    def render(self) -> str:
        return f"{self.axis}=={self.value!r}"

    def axes(self) -> Tuple[str, ...]:
        return (self.axis,)


@dataclass(frozen=True)
class And:
    terms: Tuple["Predicate", ...]

    def evaluate(self, attributes: Mapping[str, str]) -> bool:
        return all(t.evaluate(attributes) for t in self.terms)

    def render(self) -> str:
        return " & ".join(_wrap(t, Or) for t in self.terms)

    def axes(self) -> Tuple[str, ...]:
        return _collect_axes(self.terms)


@dataclass(frozen=True)
class Or:
    terms: Tuple["Predicate", ...]

    def evaluate(self, attributes: Mapping[str, str]) -> bool:
        return any(t.evaluate(attributes) for t in self.terms)

    def render(self) -> str:
        return " | ".join(_wrap(t, And) for t in self.terms)

    def axes(self) -> Tuple[str, ...]:
        return _collect_axes(self.terms)


Predicate = Union[Eq, And, Or]


def _wrap(term: Predicate, needs_parens) -> str:
    text = term.render()
    return f"({text})" if isinstance(term, needs_parens) and len(term.terms) > 1 else text


def _collect_axes(terms) -> Tuple[str, ...]:
    seen: dict = {}
    for t in terms:
        for a in t.axes():
            seen.setdefault(a, None)
    return tuple(seen)


def all_of(*terms: Predicate) -> Predicate:
    """AND the terms together; a single term is returned as-is."""
    if len(terms) == 1:
        return terms[0]
    return And(tuple(terms))


def any_of(*terms: Predicate) -> Predicate:
    if len(terms) == 1:
        return terms[0]
    return Or(tuple(terms))
