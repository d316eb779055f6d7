"""Customer attribution endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from ...schemas.selection import CustomerSummaryModel
from ...services.outputs import customer_summary, driver_tally_to_csv

router = APIRouter(prefix="/customers", tags=["customers"])


def _classified_state(request: Request):
    state = request.app.state.pipeline.state
    if state is None or state.classification is None or state.tally is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Customers not classified yet.")
    return state


@router.get("/summary", response_model=CustomerSummaryModel, status_code=status.HTTP_200_OK)
def get_customer_summary(request: Request) -> CustomerSummaryModel:
    state = _classified_state(request)
    return CustomerSummaryModel(**customer_summary(state.classification, state.tally))


@router.get("/drivers.csv", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
def get_driver_tally_csv(request: Request) -> PlainTextResponse:
    state = _classified_state(request)
    return PlainTextResponse(driver_tally_to_csv(state.tally), media_type="text/csv")
