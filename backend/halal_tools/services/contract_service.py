"""
Contract generation: quota check, rendering and audit record
"""
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from sqlalchemy.orm import Session

from halal_tools.core.errors import QuotaExhausted, UnknownContractType
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.core.metrics import contracts_generated_total
from halal_tools.models.usage import ContractGeneration
from halal_tools.models.user import User
from halal_tools.services.contract_renderer import InvalidContractType, render
from halal_tools.services.contract_templates import get_template
from halal_tools.services.quota_ledger import QuotaLedger

logger = LoggingConfig.get_logger(__name__)


@dataclass
class GeneratedContract:
    contract_type: str
    text: str
    remaining: Union[int, str]


class ContractService:
    """Generates contracts on behalf of a signed-in user or an anonymous IP"""

    def __init__(self, db: Session, ledger: Optional[QuotaLedger] = None):
        self.db = db
        self.ledger = ledger or QuotaLedger(db)

    @staticmethod
    def identity_for(user: Optional[User], client_ip: Optional[str]) -> str:
        """Quota key: the user when signed in, otherwise the client IP"""
        if user is not None:
            return user.quota_identity
        return f"ip:{client_ip or 'unknown'}"

    def generate(
        self,
        contract_type: str,
        fields: Optional[Mapping[str, str]],
        user: Optional[User] = None,
        client_ip: Optional[str] = None,
    ) -> GeneratedContract:
        """
        Spend one free use and render a contract

        The contract type is checked before the quota so an unknown type does
        not cost the caller a use. The generation record is committed in the
        same transaction as the spent use, so a failed write costs nothing.

        Raises:
            UnknownContractType: No template for ``contract_type``
            QuotaExhausted: No free uses left this month
            StorageError: The use or its record could not be saved
        """
        if get_template(contract_type) is None:
            raise UnknownContractType(contract_type)

        fields = {str(k): "" if v is None else str(v) for k, v in (fields or {}).items()}
        text = render(contract_type, fields)
        if isinstance(text, InvalidContractType):
            # get_template already accepted the tag
            raise UnknownContractType(contract_type)

        identity = self.identity_for(user, client_ip)
        user_id = user.id if user is not None else None
        generation = ContractGeneration(
            identity=identity,
            user_id=user_id,
            ip_address=client_ip,
            contract_type=contract_type,
            used_fields=dict(fields),
        )
        decision = self.ledger.check_and_consume(
            identity,
            unlimited=bool(user is not None and user.is_premium),
            user_id=user_id,
            with_rows=[generation],
        )
        if not decision.allowed:
            logger.info(
                f"Free usage exhausted for {identity}",
                extra={"identity": identity, "contract_type": contract_type},
            )
            raise QuotaExhausted()

        contracts_generated_total.labels(contract_type=contract_type).inc()
        logger.info(
            f"Generated {contract_type} contract for {identity}",
            extra={
                "identity": identity,
                "contract_type": contract_type,
                "remaining": decision.remaining,
            },
        )
        return GeneratedContract(contract_type=contract_type, text=text, remaining=decision.remaining)
