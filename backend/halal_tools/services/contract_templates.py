"""
Clause-based contract templates

Each contract type maps to a fixed, ordered tuple of clauses. A clause body is
a pure function of the submitted form fields; a missing field renders as a
blank line placeholder instead of raising.

The ``required`` flag is descriptive metadata for the frontend. Every clause of
a template is always rendered.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

PLACEHOLDER = "__________"

GOVERNING_LAW_PK = "This Agreement shall be governed by the laws of the Islamic Republic of Pakistan."
GOVERNING_LAW_SHARIAH = (
    "This Agreement is governed by Islamic Shariah and the laws of the Islamic Republic of Pakistan."
)

Fields = Mapping[str, str]


class ContractType(str, Enum):
    """Supported contract type tags"""
    NDA = "NDA"
    FREELANCE = "Freelance"
    PARTNERSHIP = "Partnership"
    MUDARABAH = "Mudarabah"
    MUSHARAKAH = "Musharakah"
    QARD_HASAN = "QardHasan"
    IJARAH = "Ijarah"
    WAKALAH = "Wakalah"
    MURABAHA = "Murabaha"
    ISTISNA = "Istisna"
    SALAM = "Salam"
    EMPLOYMENT = "Employment"


@dataclass(frozen=True)
class ClauseDefinition:
    """One titled paragraph of a contract"""
    id: str
    title: str
    required: bool
    render: Callable[[Fields], str]


def field(fields: Fields, key: str, default: str = PLACEHOLDER) -> str:
    """Value of a form field, or ``default`` when missing or blank"""
    value = fields.get(key)
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def _fixed(text: str) -> Callable[[Fields], str]:
    return lambda fields: text


CONTRACT_TEMPLATES: Dict[ContractType, Tuple[ClauseDefinition, ...]] = {
    ContractType.NDA: (
        ClauseDefinition("purpose", "Purpose", True, _fixed(
            "The Parties wish to explore a business relationship and may disclose confidential information.")),
        ClauseDefinition("confidential_info", "Definition of Confidential Information", True, _fixed(
            '"Confidential Information" means any non-public information disclosed in any form, '
            'including written, oral, or digital.')),
        ClauseDefinition("obligations", "Obligations of Receiving Party", True, _fixed(
            "Each Party agrees not to disclose confidential information to third parties "
            "without prior written consent.")),
        ClauseDefinition("term", "Term and Termination", False, _fixed(
            "This Agreement shall remain in effect for 2 years unless terminated earlier "
            "in writing by either Party.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_PK)),
    ),

    ContractType.FREELANCE: (
        ClauseDefinition("scope", "Scope of Work", True, lambda f: (
            f"The Freelancer agrees to perform the following services: {field(f, 'Service Description')}.")),
        ClauseDefinition("payment", "Payment Terms", True, lambda f: (
            f"The Client agrees to pay a total of {field(f, 'Amount')} "
            f"upon successful completion of the service.")),
        ClauseDefinition("deadline", "Delivery Deadline", True, lambda f: (
            f"The service must be completed by {field(f, 'Deadline')}.")),
        ClauseDefinition("ownership", "Ownership of Work", False, _fixed(
            "All deliverables produced under this Agreement shall be the exclusive property "
            "of the Client upon final payment.")),
        ClauseDefinition("termination", "Termination Clause", False, _fixed(
            "Either party may terminate this Agreement with a 7-day written notice.")),
    ),

    ContractType.PARTNERSHIP: (
        ClauseDefinition("purpose", "Purpose", True, _fixed(
            "The Partners agree to operate a business together for mutual benefit "
            "under the business name provided.")),
        ClauseDefinition("capital", "Capital Contribution", True, _fixed(
            "Each Partner agrees to contribute capital to the business as mutually decided.")),
        ClauseDefinition("profit_sharing", "Profit Sharing", True, lambda f: (
            f"Profits and losses shall be shared as follows: {field(f, 'Share Percentage')} to each Partner.")),
        ClauseDefinition("management", "Management Responsibilities", False, _fixed(
            "All major business decisions will be made jointly and documented.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_PK)),
    ),

    ContractType.MUDARABAH: (
        ClauseDefinition("parties", "Parties", True, lambda f: (
            f"This Agreement is made between the Investor (Rabb-ul-Maal): {field(f, 'Investor Name')}, "
            f"and the Entrepreneur (Mudarib): {field(f, 'Entrepreneur Name')}.")),
        ClauseDefinition("investment", "Investment Amount", True, lambda f: (
            f"The Investor agrees to provide a capital of {field(f, 'Investment Amount')} "
            f"for the business venture.")),
        ClauseDefinition("profit_sharing", "Profit Sharing Ratio", True, lambda f: (
            f"Profits will be shared as follows: {field(f, 'Profit Ratio')} to the Mudarib, "
            f"and the remainder to the Rabb-ul-Maal.")),
        ClauseDefinition("loss_bearing", "Bearing of Loss", True, _fixed(
            "Any financial loss not caused by the negligence or misconduct of the Mudarib "
            "shall be borne solely by the Rabb-ul-Maal.")),
        ClauseDefinition("duration", "Duration of Agreement", False, lambda f: (
            f"This Agreement shall remain in effect for {field(f, 'Duration')} unless terminated earlier.")),
        ClauseDefinition("termination", "Termination Conditions", False, _fixed(
            "Either party may terminate the Agreement with due notice, provided all financial "
            "matters are settled.")),
    ),

    ContractType.MUSHARAKAH: (
        ClauseDefinition("partners", "Partners and Contributions", True, lambda f: (
            f"Partner A: {field(f, 'Partner A')} and Partner B: {field(f, 'Partner B')} "
            f"agree to jointly invest in the business.")),
        ClauseDefinition("capital_split", "Capital Contributions", True, lambda f: (
            f"Partner A contributes {field(f, 'Capital A')}, and Partner B contributes {field(f, 'Capital B')}.")),
        ClauseDefinition("profit_loss", "Profit and Loss Sharing", True, lambda f: (
            f"Profits will be shared as agreed: {field(f, 'Profit Ratio')}. Losses shall be borne "
            f"in proportion to each Partner's capital contribution.")),
        ClauseDefinition("management_roles", "Roles and Responsibilities", False, _fixed(
            "Both partners shall participate in management, unless otherwise agreed.")),
        ClauseDefinition("termination", "Termination Clause", False, _fixed(
            "The partnership may be dissolved with mutual consent or breach of terms.")),
    ),

    ContractType.QARD_HASAN: (
        ClauseDefinition("loan_parties", "Parties Involved", True, lambda f: (
            f"Lender: {field(f, 'Lender')}, Borrower: {field(f, 'Borrower')}.")),
        ClauseDefinition("loan_amount", "Loan Amount and Purpose", True, lambda f: (
            f"The Borrower acknowledges receipt of {field(f, 'Loan Amount')} "
            f"for the purpose: {field(f, 'Purpose')}.")),
        ClauseDefinition("repayment_terms", "Repayment Terms", True, lambda f: (
            f"The Borrower agrees to repay the loan by {field(f, 'Repayment Date')} without interest.")),
        ClauseDefinition("collateral", "Collateral (if any)", False, lambda f: (
            f"The Borrower pledges the following collateral: {field(f, 'Collateral', 'None')}.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_SHARIAH)),
    ),

    ContractType.IJARAH: (
        ClauseDefinition("asset", "Leased Asset", True, lambda f: (
            f"The Lessor leases to the Lessee the following asset: {field(f, 'Asset Description')}. "
            f"Ownership of the asset remains with the Lessor throughout the lease.")),
        ClauseDefinition("rent", "Rental Payments", True, lambda f: (
            f"The Lessee shall pay a rent of {field(f, 'Rent Amount')} "
            f"per {field(f, 'Payment Frequency', 'month')}.")),
        ClauseDefinition("lease_term", "Lease Term", True, lambda f: (
            f"The lease begins on {field(f, 'Start Date')} and ends on {field(f, 'End Date')}.")),
        ClauseDefinition("maintenance", "Maintenance and Risk", True, _fixed(
            "Major maintenance and the risk of destruction of the asset are borne by the Lessor; "
            "ordinary upkeep arising from use is borne by the Lessee.")),
        ClauseDefinition("late_payment", "Late Payment", False, _fixed(
            "No interest shall be charged on late rent. Any agreed late payment amount shall be "
            "donated to charity.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_SHARIAH)),
    ),

    ContractType.WAKALAH: (
        ClauseDefinition("appointment", "Appointment of Agent", True, lambda f: (
            f"The Principal appoints the Agent (Wakil) to act on its behalf for the following "
            f"purpose: {field(f, 'Scope of Agency')}.")),
        ClauseDefinition("agency_fee", "Agency Fee", True, lambda f: (
            f"The Agent shall receive a fee of {field(f, 'Agency Fee')} for services rendered under this Agreement.")),
        ClauseDefinition("duties", "Duties of the Agent", True, _fixed(
            "The Agent shall act in good faith, within the limits of the authority granted, and "
            "shall not engage in any transaction prohibited by Shariah.")),
        ClauseDefinition("liability", "Liability", False, _fixed(
            "The Agent holds the Principal's assets in trust and is liable only for losses caused "
            "by negligence, misconduct or breach of this Agreement.")),
        ClauseDefinition("term", "Term and Revocation", False, lambda f: (
            f"This agency remains in effect for {field(f, 'Duration')} and may be revoked by the "
            f"Principal with written notice.")),
    ),

    ContractType.MURABAHA: (
        ClauseDefinition("goods", "Description of Goods", True, lambda f: (
            f"The Seller agrees to sell and the Buyer agrees to purchase: {field(f, 'Goods Description')}.")),
        ClauseDefinition("cost_price", "Cost Price", True, lambda f: (
            f"The Seller discloses that the cost of acquiring the goods is {field(f, 'Cost Price')}.")),
        ClauseDefinition("profit_margin", "Profit Margin and Sale Price", True, lambda f: (
            f"The agreed profit margin is {field(f, 'Profit Margin')}, giving a total sale price "
            f"of {field(f, 'Sale Price')}.")),
        ClauseDefinition("payment_schedule", "Payment Schedule", True, lambda f: (
            f"The Buyer shall pay the sale price as follows: {field(f, 'Payment Schedule')}.")),
        ClauseDefinition("ownership", "Ownership and Possession", False, _fixed(
            "The Seller confirms that it owns and has taken possession of the goods before this sale.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_SHARIAH)),
    ),

    ContractType.ISTISNA: (
        ClauseDefinition("specification", "Specification of the Asset", True, lambda f: (
            f"The Manufacturer agrees to manufacture the following for the Buyer: "
            f"{field(f, 'Asset Specification')}.")),
        ClauseDefinition("price", "Contract Price", True, lambda f: (
            f"The total price of {field(f, 'Contract Price')} is fixed at the time of this Agreement.")),
        ClauseDefinition("delivery", "Delivery", True, lambda f: (
            f"The asset shall be delivered on or before {field(f, 'Delivery Date')}.")),
        ClauseDefinition("payment", "Payment Terms", False, lambda f: (
            f"The price shall be paid as follows: {field(f, 'Payment Terms')}.")),
        ClauseDefinition("defects", "Defects and Inspection", False, _fixed(
            "The Buyer may reject the asset if it does not conform to the agreed specification.")),
    ),

    ContractType.SALAM: (
        ClauseDefinition("commodity", "Commodity", True, lambda f: (
            f"The Seller agrees to deliver the following commodity: {field(f, 'Commodity')}, "
            f"in the quantity of {field(f, 'Quantity')}.")),
        ClauseDefinition("advance_payment", "Advance Payment", True, lambda f: (
            f"The Buyer pays the full price of {field(f, 'Price')} in advance upon signing this Agreement.")),
        ClauseDefinition("delivery", "Delivery Date and Place", True, lambda f: (
            f"The commodity shall be delivered on {field(f, 'Delivery Date')} "
            f"at {field(f, 'Delivery Place')}.")),
        ClauseDefinition("quality", "Quality", False, _fixed(
            "The commodity shall be of the quality and specification agreed by the Parties.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_SHARIAH)),
    ),

    ContractType.EMPLOYMENT: (
        ClauseDefinition("position", "Position and Duties", True, lambda f: (
            f"The Employer employs the Employee as {field(f, 'Job Title')}. The Employee shall "
            f"perform the duties reasonably assigned to this position.")),
        ClauseDefinition("compensation", "Compensation", True, lambda f: (
            f"The Employee shall receive a salary of {field(f, 'Salary')} per month.")),
        ClauseDefinition("start_date", "Commencement", True, lambda f: (
            f"Employment shall commence on {field(f, 'Start Date')}.")),
        ClauseDefinition("working_hours", "Working Hours", False, lambda f: (
            f"Normal working hours are {field(f, 'Working Hours')}, with time allowed for prayers.")),
        ClauseDefinition("termination", "Termination", False, lambda f: (
            f"Either party may terminate employment with {field(f, 'Notice Period', '30 days')} written notice.")),
        ClauseDefinition("governing_law", "Governing Law", False, _fixed(GOVERNING_LAW_PK)),
    ),
}


def get_template(contract_type: str) -> Optional[Tuple[ClauseDefinition, ...]]:
    """Ordered clauses for a contract type tag, or None when the tag is unknown"""
    try:
        return CONTRACT_TEMPLATES[ContractType(contract_type)]
    except ValueError:
        return None


def list_contract_types() -> List[Dict[str, object]]:
    """Known contract types with their clause metadata"""
    return [
        {
            "type": contract_type.value,
            "clauses": [
                {"id": clause.id, "title": clause.title, "required": clause.required}
                for clause in clauses
            ],
        }
        for contract_type, clauses in CONTRACT_TEMPLATES.items()
    ]
