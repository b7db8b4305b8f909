"""
Unit tests for the contract template store
"""
import pytest

from halal_tools.services.contract_templates import (CONTRACT_TEMPLATES,
                                                     PLACEHOLDER, ContractType,
                                                     field, get_template,
                                                     list_contract_types)


def test_every_contract_type_has_a_template():
    assert set(CONTRACT_TEMPLATES) == set(ContractType)
    assert len(CONTRACT_TEMPLATES) == 12


def test_get_template_unknown_type():
    assert get_template("Lease") is None
    assert get_template("") is None
    assert get_template("nda") is None  # tags are case sensitive


def test_get_template_preserves_clause_order():
    clauses = get_template("NDA")
    assert [c.id for c in clauses] == [
        "purpose",
        "confidential_info",
        "obligations",
        "term",
        "governing_law",
    ]


@pytest.mark.parametrize("contract_type", [t.value for t in ContractType])
def test_clause_ids_unique_and_renderable_without_fields(contract_type):
    clauses = get_template(contract_type)
    ids = [c.id for c in clauses]
    assert len(ids) == len(set(ids))
    for clause in clauses:
        text = clause.render({})
        assert isinstance(text, str) and text


def test_missing_fields_render_placeholder():
    clause = get_template("Freelance")[0]
    assert clause.render({}) == (
        f"The Freelancer agrees to perform the following services: {PLACEHOLDER}."
    )
    assert clause.render({"Service Description": "Logo design"}) == (
        "The Freelancer agrees to perform the following services: Logo design."
    )


def test_collateral_defaults_to_none():
    collateral = next(c for c in get_template("QardHasan") if c.id == "collateral")
    assert collateral.render({}) == "The Borrower pledges the following collateral: None."


def test_field_treats_blank_as_missing():
    assert field({"Amount": "   "}, "Amount") == PLACEHOLDER
    assert field({"Amount": " 500 "}, "Amount") == "500"
    assert field({}, "Amount", default="") == ""


def test_list_contract_types_exposes_metadata():
    types = list_contract_types()
    nda = next(t for t in types if t["type"] == "NDA")
    assert nda["clauses"][0] == {"id": "purpose", "title": "Purpose", "required": True}
    assert {t["type"] for t in types} == {t.value for t in ContractType}
