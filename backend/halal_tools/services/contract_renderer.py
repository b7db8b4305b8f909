"""
Contract text renderer

Composes header, party block, numbered clauses and signature footer into a
single plain-text document. Rendering has no side effects; the caller records
the generation.
"""
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Tuple, Union

from halal_tools.services.contract_templates import (PLACEHOLDER, ContractType,
                                                     field, get_template)
from halal_tools.utils.datetime_utils import utc_now

DATE_FORMAT = "%B %d, %Y"

FOOTER = (
    "IN WITNESS WHEREOF, the parties have executed this Agreement:\n\n"
    "Signature of Party A: _________________________\n\n"
    "Signature of Party B: _________________________"
)

# (label, field key) pairs printed under the header
PARTY_FIELDS = {
    ContractType.NDA: (("Party A", "Party A"), ("Party B", "Party B")),
    ContractType.FREELANCE: (("Client", "Client Name"), ("Freelancer", "Freelancer Name")),
    ContractType.PARTNERSHIP: (
        ("Partner A", "Partner A"),
        ("Partner B", "Partner B"),
        ("Business Name", "Business Name"),
    ),
    ContractType.EMPLOYMENT: (("Employer", "Employer Name"), ("Employee", "Employee Name")),
    ContractType.MUDARABAH: (
        ("Investor (Rabb-ul-Maal)", "Investor Name"),
        ("Entrepreneur (Mudarib)", "Entrepreneur Name"),
    ),
    ContractType.MUSHARAKAH: (("Partner A", "Partner A"), ("Partner B", "Partner B")),
    ContractType.QARD_HASAN: (("Lender", "Lender"), ("Borrower", "Borrower")),
    ContractType.IJARAH: (("Lessor", "Lessor Name"), ("Lessee", "Lessee Name")),
    ContractType.WAKALAH: (("Principal", "Principal Name"), ("Agent (Wakil)", "Agent Name")),
    ContractType.MURABAHA: (("Seller", "Seller Name"), ("Buyer", "Buyer Name")),
    ContractType.ISTISNA: (("Buyer", "Buyer Name"), ("Manufacturer", "Manufacturer Name")),
    ContractType.SALAM: (("Buyer", "Buyer Name"), ("Seller", "Seller Name")),
}

GENERIC_PARTIES: Tuple[Tuple[str, str], ...] = (("Party A", "Party A"), ("Party B", "Party B"))


@dataclass(frozen=True)
class InvalidContractType:
    """Returned instead of text when the contract type has no template"""
    contract_type: str

    @property
    def message(self) -> str:
        return f"Invalid contract type selected: {self.contract_type!r}"


def _party_block(contract_type: str, fields: Mapping[str, str]) -> str:
    try:
        parties = PARTY_FIELDS.get(ContractType(contract_type), GENERIC_PARTIES)
    except ValueError:
        parties = GENERIC_PARTIES
    lines = [f"{label}: {field(fields, key)}" for label, key in parties]
    return "\n".join(lines) + "\n\n"


def render(
    contract_type: str,
    fields: Optional[Mapping[str, str]],
    today: Optional[date] = None,
) -> Union[str, InvalidContractType]:
    """
    Render the full contract text for ``contract_type``

    Args:
        contract_type: Contract type tag, e.g. ``"NDA"``
        fields: Submitted form values keyed by field label
        today: Date used when the form has no ``Agreement Date``

    Returns:
        Contract text, or ``InvalidContractType`` for an unknown tag
    """
    template = get_template(contract_type)
    if template is None:
        return InvalidContractType(contract_type)

    fields = fields or {}
    agreement_date = field(fields, "Agreement Date", default="")
    if not agreement_date:
        agreement_date = (today or utc_now().date()).strftime(DATE_FORMAT)

    header = f"\n\nThis Agreement is entered into on {agreement_date} between:\n\n"
    parties = _party_block(contract_type, fields)
    clause_text = "\n".join(
        f"{index}. {clause.title}\n{clause.render(fields)}\n"
        for index, clause in enumerate(template, start=1)
    )
    return f"{header}{parties}{clause_text}\n{FOOTER}"


__all__ = ["render", "InvalidContractType", "PLACEHOLDER", "FOOTER"]
