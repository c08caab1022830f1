"""Tests for OperationContext, substitution and entity links."""

import pytest

from catalog_authz.context.entity_link import EntityLink
from catalog_authz.context.operation import OperationContext
from catalog_authz.context.substitution import Substitution, parent_type_of, substitute
from catalog_authz.errors import MalformedContext
from catalog_authz.policy.operations import MetadataOperation as Op


def test_operation_context_accepts_names_and_enums():
    ctx = OperationContext("table", "EditTests", Op.VIEW_ALL, "VIEW_TESTS")
    assert ctx.operations == frozenset({Op.EDIT_TESTS, Op.VIEW_ALL, Op.VIEW_TESTS})
    assert ctx.sorted_operations() == [Op.EDIT_TESTS, Op.VIEW_ALL, Op.VIEW_TESTS]


def test_operation_context_is_immutable():
    ctx = OperationContext("table", Op.VIEW_ALL)
    with pytest.raises(AttributeError):
        ctx.resource_type = "topic"  # type: ignore[misc]


@pytest.mark.parametrize(
    "args",
    [("", Op.VIEW_ALL), ("table",), ("table", Op.ALL), ("table", "Fly")],
)
def test_malformed_operation_context(args):
    with pytest.raises((MalformedContext, ValueError)):
        OperationContext(*args)


def test_test_case_view_becomes_view_tests_on_table():
    original = OperationContext("testCase", Op.VIEW_ALL)

    substituted = substitute(original)

    assert substituted == OperationContext("table", Op.VIEW_TESTS)
    assert original.resource_type == "testCase"


@pytest.mark.parametrize("op", [Op.CREATE, Op.EDIT_ALL, Op.DELETE, Op.EDIT_DESCRIPTION])
def test_test_case_changes_become_edit_tests_on_table(op):
    assert substitute(OperationContext("testCase", op)) == OperationContext("table", Op.EDIT_TESTS)


def test_types_without_entry_are_unchanged():
    ctx = OperationContext("ingestionPipeline", Op.VIEW_ALL)
    assert substitute(ctx) is ctx
    assert parent_type_of("ingestionPipeline") == "ingestionPipeline"
    assert parent_type_of("testCase") == "table"


def test_custom_substitution_table():
    table = {"chart": Substitution(parent_type="dashboard", remap=lambda op: Op.EDIT_ALL)}
    assert substitute(OperationContext("chart", Op.EDIT_TAGS), table) == OperationContext("dashboard", Op.EDIT_ALL)


def test_entity_link_parse_column_link():
    link = EntityLink.parse("<#E::table::svc.db.schema.orders::columns::amount>")

    assert link.entity_type == "table"
    assert link.entity_fqn == "svc.db.schema.orders"
    assert link.field_name == "columns"
    assert link.array_field_name == "amount"
    assert link.array_field_value is None
    assert link.fully_qualified_field_value == "svc.db.schema.orders.amount"
    assert link.link_string == "<#E::table::svc.db.schema.orders::columns::amount>"


def test_entity_link_parse_table_link():
    link = EntityLink.parse("<#E::table::svc.db.schema.orders>")
    assert link.fully_qualified_field_value == "svc.db.schema.orders"
    assert str(link) == "<#E::table::svc.db.schema.orders>"


@pytest.mark.parametrize("text", ["", "table::x", "<#E::table>", "<#E::table::>", "<#E::a::b::c::d::e::f>"])
def test_entity_link_rejects_malformed(text):
    with pytest.raises(MalformedContext, match="Failed to parse"):
        EntityLink.parse(text)
