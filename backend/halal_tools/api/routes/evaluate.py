"""
Investment evaluation API route
"""
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from halal_tools.services.investment_evaluator import (InvestmentDetails,
                                                       InvestmentEvaluator)

router = APIRouter(prefix="/api/evaluate-investment", tags=["evaluate"])


class EvaluateInvestmentRequest(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    description: Optional[str] = None
    riba: Optional[str] = None
    incomeNature: Optional[str] = None
    industry: Optional[str] = None
    transparency: Optional[str] = None
    incomeSource: Optional[str] = None
    ethics: Optional[str] = None


class EvaluateInvestmentResponse(BaseModel):
    response: str
    verdict: Optional[str] = None
    reason: Optional[str] = None


@router.post("", response_model=EvaluateInvestmentResponse)
@router.post("/", response_model=EvaluateInvestmentResponse, include_in_schema=False)
async def evaluate_investment(request: EvaluateInvestmentRequest):
    """Ask the model whether an investment is Halal, Haram or Mashbooh"""
    details = InvestmentDetails(
        name=request.name,
        type=request.type,
        description=request.description,
        riba=request.riba,
        income_nature=request.incomeNature,
        industry=request.industry,
        transparency=request.transparency,
        income_source=request.incomeSource,
        ethics=request.ethics,
    )
    evaluation = await InvestmentEvaluator().evaluate(details)
    return EvaluateInvestmentResponse(**evaluation.to_dict())
