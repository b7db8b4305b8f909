"""
Contract generation API routes
"""
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from halal_tools.core.auth import get_current_user_optional
from halal_tools.core.database import get_db
from halal_tools.core.middleware import get_client_ip
from halal_tools.models.user import User
from halal_tools.services.contract_service import ContractService
from halal_tools.services.contract_templates import list_contract_types

router = APIRouter(prefix="/api/contracts", tags=["contracts"])


class GenerateContractRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_type: str = Field(..., alias="contractType", min_length=1)
    form_data: Optional[Dict[str, Any]] = Field(default=None, alias="formData")


class GenerateContractResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    remaining_free_uses: Union[int, str] = Field(..., alias="remainingFreeUses")
    contract: str


class ClauseInfo(BaseModel):
    id: str
    title: str
    required: bool


class ContractTypeInfo(BaseModel):
    type: str
    clauses: List[ClauseInfo]


@router.get("/types", response_model=List[ContractTypeInfo])
async def get_contract_types():
    """Supported contract types and their clauses"""
    return list_contract_types()


@router.post("/generate")
async def generate_contract(
    payload: GenerateContractRequest,
    request: Request,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    """
    Generate a contract

    Spends one free use of the caller (the signed-in user, otherwise the
    client IP). Premium users are never charged.
    """
    generated = ContractService(db).generate(
        payload.contract_type,
        payload.form_data,
        user=current_user,
        client_ip=get_client_ip(request),
    )
    return GenerateContractResponse(
        remaining_free_uses=generated.remaining,
        contract=generated.text,
    ).model_dump(by_alias=True)
