"""
Rule conditions.

Conditions are a small closed set of variants rather than an expression
language. Policy documents write them in a compact function form:

    isOwner()
    noOwner()
    matchAnyTag('PII.Sensitive', 'Tier.Tier1')
    matchAllTags('PII.Sensitive', 'Tier.Tier1')
    hasDomain()
    inDomain('Marketing')
    adminOnly()
    true

joined with `` and `` / `` or `` (``and`` binds tighter; no parentheses).
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import TYPE_CHECKING, ClassVar, Union

from catalog_authz.errors import PolicyConfigError

if TYPE_CHECKING:
    from catalog_authz.context.resource import ResourceContext
    from catalog_authz.context.subject import Subject


@dataclass(frozen=True)
class AlwaysTrue:
    needs_resource: ClassVar[bool] = False

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return True

    def __str__(self) -> str:
        return "true"


@dataclass(frozen=True)
class IsOwner:
    """Resource owner is the subject or one of the subject's teams."""

    needs_resource: ClassVar[bool] = True

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return subject.owns(resource.resolve().owner)

    def __str__(self) -> str:
        return "isOwner()"


@dataclass(frozen=True)
class NoOwner:
    needs_resource: ClassVar[bool] = True

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return not resource.resolve().owner

    def __str__(self) -> str:
        return "noOwner()"


@dataclass(frozen=True)
class MatchAnyTag:
    needs_resource: ClassVar[bool] = True

    tags: frozenset[str]

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return bool(self.tags & resource.resolve().tags)

    def __str__(self) -> str:
        return f"matchAnyTag({_quote_all(self.tags)})"


@dataclass(frozen=True)
class MatchAllTags:
    needs_resource: ClassVar[bool] = True

    tags: frozenset[str]

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return self.tags <= resource.resolve().tags

    def __str__(self) -> str:
        return f"matchAllTags({_quote_all(self.tags)})"


@dataclass(frozen=True)
class HasDomain:
    """Resource belongs to one of the subject's domains."""

    needs_resource: ClassVar[bool] = True

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        domain = resource.resolve().domain
        return domain is not None and domain in subject.domains

    def __str__(self) -> str:
        return "hasDomain()"


@dataclass(frozen=True)
class InDomain:
    needs_resource: ClassVar[bool] = True

    domain: str

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return resource.resolve().domain == self.domain

    def __str__(self) -> str:
        return f"inDomain('{self.domain}')"


@dataclass(frozen=True)
class AdminOnly:
    """
    Holds for every non-admin subject.

    Paired with a DENY rule this reserves the rule's operations for
    administrators. Admins never reach rule evaluation.
    """

    needs_resource: ClassVar[bool] = False

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        return not subject.is_admin

    def __str__(self) -> str:
        return "adminOnly()"


Leaf = Union[AlwaysTrue, IsOwner, NoOwner, MatchAnyTag, MatchAllTags, HasDomain, InDomain, AdminOnly]


@dataclass(frozen=True)
class AllOf:
    terms: tuple[Leaf, ...]

    @property
    def needs_resource(self) -> bool:
        return any(t.needs_resource for t in self.terms)

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        # Cheap terms first so a failing subject-only term skips the lookup.
        ordered = sorted(self.terms, key=lambda t: t.needs_resource)
        return all(t.evaluate(subject, resource) for t in ordered)

    def __str__(self) -> str:
        return " and ".join(str(t) for t in self.terms)


@dataclass(frozen=True)
class AnyOf:
    terms: tuple[Leaf | AllOf, ...]

    @property
    def needs_resource(self) -> bool:
        return any(t.needs_resource for t in self.terms)

    def evaluate(self, subject: Subject, resource: ResourceContext) -> bool:
        ordered = sorted(self.terms, key=lambda t: t.needs_resource)
        return any(t.evaluate(subject, resource) for t in ordered)

    def __str__(self) -> str:
        return " or ".join(str(t) for t in self.terms)


Condition = Union[Leaf, AllOf, AnyOf]

ALWAYS = AlwaysTrue()


# ---- Parsing -------------------------------------------------------------------------


_CALL_RE = re.compile(r"^(?P<fn>[A-Za-z]+)\((?P<args>.*)\)$")
_ARG_RE = re.compile(r"""\s*(?:'([^']*)'|"([^"]*)")\s*(?:,|$)""")
_KEYWORD_RES = {
    keyword: re.compile(rf"""'[^']*'|"[^"]*"|\s+{keyword}\s+""") for keyword in ("and", "or")
}


def _quote_all(values: frozenset[str]) -> str:
    return ", ".join(f"'{v}'" for v in sorted(values))


def _split_keyword(text: str, keyword: str) -> list[str]:
    """Split on `` and `` / `` or `` outside quoted arguments."""
    parts: list[str] = []
    start = 0
    for match in _KEYWORD_RES[keyword].finditer(text):
        if match.group()[0] in "'\"":
            continue
        parts.append(text[start : match.start()])
        start = match.end()
    parts.append(text[start:])
    return parts


def _parse_args(raw: str, expr: str) -> list[str]:
    raw = raw.strip()
    if not raw:
        return []
    args: list[str] = []
    pos = 0
    while pos < len(raw):
        match = _ARG_RE.match(raw, pos)
        if match is None or match.end() == pos:
            raise PolicyConfigError(f"invalid arguments in condition {expr!r}")
        args.append(match.group(1) if match.group(1) is not None else match.group(2))
        pos = match.end()
    return args


def _parse_leaf(expr: str) -> Leaf:
    text = expr.strip()
    if text.lower() == "true":
        return ALWAYS

    match = _CALL_RE.match(text)
    if match is None:
        raise PolicyConfigError(f"invalid condition {text!r}")
    fn = match.group("fn")
    args = _parse_args(match.group("args"), text)

    if fn in ("isOwner", "noOwner", "hasDomain", "adminOnly") and args:
        raise PolicyConfigError(f"{fn}() takes no arguments")

    if fn == "isOwner":
        return IsOwner()
    if fn == "noOwner":
        return NoOwner()
    if fn == "hasDomain":
        return HasDomain()
    if fn == "adminOnly":
        return AdminOnly()
    if fn in ("matchAnyTag", "matchAllTags"):
        if not args:
            raise PolicyConfigError(f"{fn}() requires at least one tag")
        return MatchAnyTag(frozenset(args)) if fn == "matchAnyTag" else MatchAllTags(frozenset(args))
    if fn == "inDomain":
        if len(args) != 1:
            raise PolicyConfigError("inDomain() takes exactly one domain")
        return InDomain(args[0])

    raise PolicyConfigError(f"unknown condition function {fn!r}")


def parse_condition(expr: str | None) -> Condition:
    """Parse a condition string; an empty condition always holds."""

    if expr is None or not str(expr).strip():
        return ALWAYS
    text = str(expr).strip()

    alternatives: list[Leaf | AllOf] = []
    for alternative in _split_keyword(text, "or"):
        terms = tuple(_parse_leaf(t) for t in _split_keyword(alternative, "and"))
        alternatives.append(terms[0] if len(terms) == 1 else AllOf(terms))

    if len(alternatives) == 1:
        return alternatives[0]
    return AnyOf(tuple(alternatives))
