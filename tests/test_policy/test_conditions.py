"""Tests for condition variants and the condition parser."""

import pytest

from catalog_authz.context.resource import InMemoryEntityAttributeLoader, ResourceContext
from catalog_authz.context.subject import Subject
from catalog_authz.errors import PolicyConfigError
from catalog_authz.policy.conditions import (
    ALWAYS,
    AdminOnly,
    AllOf,
    AnyOf,
    HasDomain,
    InDomain,
    IsOwner,
    MatchAllTags,
    MatchAnyTag,
    NoOwner,
    parse_condition,
)

from conftest import ORDERS_ID, make_table


def _resource(owner=None, tags=(), domain=None) -> ResourceContext:
    loader = InMemoryEntityAttributeLoader([make_table(owner, tags=tags, domain=domain)])
    return ResourceContext.by_id("table", ORDERS_ID, loader)


def test_is_owner_matches_name_or_team():
    assert IsOwner().evaluate(Subject(name="bob"), _resource("bob")) is True
    assert IsOwner().evaluate(Subject(name="erin", teams=frozenset({"dq"})), _resource("dq")) is True
    assert IsOwner().evaluate(Subject(name="bob"), _resource("carol")) is False
    assert IsOwner().evaluate(Subject(name="bob"), _resource(None)) is False


def test_no_owner():
    assert NoOwner().evaluate(Subject(name="bob"), _resource(None)) is True
    assert NoOwner().evaluate(Subject(name="bob"), _resource("bob")) is False


def test_tag_matches():
    resource = _resource(tags=("PII.Sensitive", "Tier.Tier1"))
    subject = Subject(name="u")
    assert MatchAnyTag(frozenset({"PII.Sensitive", "Other"})).evaluate(subject, resource) is True
    assert MatchAllTags(frozenset({"PII.Sensitive", "Other"})).evaluate(subject, resource) is False
    assert MatchAllTags(frozenset({"PII.Sensitive", "Tier.Tier1"})).evaluate(subject, resource) is True


def test_domain_matches():
    resource = _resource(domain="Sales")
    assert HasDomain().evaluate(Subject(name="u", domains=frozenset({"Sales"})), resource) is True
    assert HasDomain().evaluate(Subject(name="u"), resource) is False
    assert InDomain("Sales").evaluate(Subject(name="u"), resource) is True
    assert InDomain("Marketing").evaluate(Subject(name="u"), resource) is False


def test_subject_only_conditions_do_not_need_the_resource():
    assert ALWAYS.needs_resource is False
    assert AdminOnly().needs_resource is False
    assert AdminOnly().evaluate(Subject(name="u"), ResourceContext.for_type("table")) is True
    assert IsOwner().needs_resource is True


@pytest.mark.parametrize(
    "expr, expected",
    [
        (None, ALWAYS),
        ("", ALWAYS),
        ("true", ALWAYS),
        ("isOwner()", IsOwner()),
        ("noOwner()", NoOwner()),
        ("hasDomain()", HasDomain()),
        ("adminOnly()", AdminOnly()),
        ("inDomain('Sales')", InDomain("Sales")),
        ("matchAnyTag('PII.Sensitive', \"Tier.Tier1\")", MatchAnyTag(frozenset({"PII.Sensitive", "Tier.Tier1"}))),
        ("matchAllTags('A')", MatchAllTags(frozenset({"A"}))),
        ("isOwner() and matchAnyTag('A')", AllOf((IsOwner(), MatchAnyTag(frozenset({"A"}))))),
        ("isOwner() or noOwner()", AnyOf((IsOwner(), NoOwner()))),
    ],
)
def test_parse_condition(expr, expected):
    assert parse_condition(expr) == expected


def test_and_binds_tighter_than_or():
    parsed = parse_condition("noOwner() or isOwner() and hasDomain()")
    assert parsed == AnyOf((NoOwner(), AllOf((IsOwner(), HasDomain()))))
    assert str(parsed) == "noOwner() or isOwner() and hasDomain()"


@pytest.mark.parametrize(
    "expr",
    ["isOwner(", "isOwner('x')", "matchAnyTag()", "inDomain()", "inDomain('a', 'b')", "doSomething()", "1 == 1"],
)
def test_parse_condition_rejects_invalid(expr):
    with pytest.raises(PolicyConfigError):
        parse_condition(expr)


def test_combined_conditions_evaluate():
    owner_and_pii = parse_condition("isOwner() and matchAnyTag('PII.Sensitive')")
    assert owner_and_pii.evaluate(Subject(name="bob"), _resource("bob", tags=("PII.Sensitive",))) is True
    assert owner_and_pii.evaluate(Subject(name="bob"), _resource("bob")) is False


def test_keywords_inside_quoted_arguments_are_not_separators():
    assert parse_condition("matchAnyTag('Black or White')") == MatchAnyTag(frozenset({"Black or White"}))
    assert parse_condition("inDomain(\"R and D\") or isOwner()") == AnyOf((InDomain("R and D"), IsOwner()))
