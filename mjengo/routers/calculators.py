"""
Calculator endpoints — gated by the access check.

GET  /api/calculators/{name}         page view, never draws down quota
POST /api/calculators/{name}/submit  calculation, takes one free use
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..access import AccessDecision, authorize, enforce, require_view_access
from ..calculators.base import CalculatorInputError
from ..calculators.materials_log import append_entry
from ..calculators.registry import CALCULATOR_REGISTRY, get_calculator, has_calculator
from ..database import get_db
from ..schemas import CalculationResult
from ..sessions import get_current_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calculators", tags=["calculators"])


def _calculator_or_404(name: str):
    if not has_calculator(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Calculator not found")
    return get_calculator(name)


@router.get("")
def list_all():
    return [
        {"name": name, "title": cls.title, "fields": list(cls.fields)}
        for name, cls in CALCULATOR_REGISTRY.items()
    ]


@router.get("/{name}")
def view(name: str, decision: AccessDecision = Depends(require_view_access)):
    """Form metadata plus the caller's remaining quota."""
    calculator = _calculator_or_404(name)
    return {
        "name": calculator.name,
        "title": calculator.title,
        "fields": list(calculator.fields),
        "email": decision.email,
        "calculations_used": decision.calculations_used,
        "subscription_active": decision.subscription_active,
    }


@router.post("/{name}/submit", response_model=CalculationResult)
def submit(
    name: str,
    fields: dict,
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Run a calculation. Bad input is rejected before any quota is consumed."""
    calculator = _calculator_or_404(name)
    try:
        # Result is discarded if access is denied
        result = calculator.calculate(fields)
    except CalculatorInputError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    decision = enforce(authorize(db, identity, is_consuming_action=True))

    append_entry(result, decision.email)
    result["calculations_used"] = decision.calculations_used
    return result
