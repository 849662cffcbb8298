"""Recurring bill endpoints - overview and settlement actions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from recurring_bills.api.dependencies import get_coordinator, get_request_id
from recurring_bills.api.v1.schemas import OverviewResponse, SettlementResponse, UnmarkRequest
from recurring_bills.domain.exceptions import (
    BillNotFound,
    DomainException,
    NetworkFailure,
    ServerRejected,
    SettlementInProgress,
)
from recurring_bills.domain.models import RecurringBill
from recurring_bills.services.overview import build_overview
from recurring_bills.services.settlement import SettlementCoordinator

router = APIRouter()

GENERIC_ERROR = "Something went wrong, please try again"


def _upstream_error(e: DomainException) -> HTTPException:
    """Map a failed bill service call to a response carrying the server's message when available"""
    if isinstance(e, NetworkFailure):
        return HTTPException(status_code=503, detail="Bill service unavailable")
    if isinstance(e, ServerRejected):
        status = e.status_code if 400 <= e.status_code < 500 else 502
        return HTTPException(status_code=status, detail=e.message or GENERIC_ERROR)
    return HTTPException(status_code=500, detail=GENERIC_ERROR)


async def _find_bill(coordinator: SettlementCoordinator, bill_id: str) -> RecurringBill:
    bill = coordinator.store.get(bill_id)
    if bill is None:
        await coordinator.refresh()
        bill = coordinator.store.get(bill_id)
    if bill is None:
        raise BillNotFound(f"Bill {bill_id} not found")
    return bill


async def _refresh_quietly(coordinator: SettlementCoordinator, request_id: str) -> None:
    try:
        await coordinator.refresh()
    except (NetworkFailure, ServerRejected) as e:
        logging.warning(f"Bill list refresh failed: {e}", extra={"request_id": request_id})


async def _settle(action: str, bill_id: str, coordinator: SettlementCoordinator, request_id: str) -> SettlementResponse:
    try:
        bill = await _find_bill(coordinator, bill_id)
        if action == "mark_paid":
            outcome = await coordinator.mark_paid(bill)
        else:
            outcome = await coordinator.unmark_paid(bill)
    except BillNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SettlementInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (NetworkFailure, ServerRejected) as e:
        logging.error(f"{action} failed: {e}", extra={"request_id": request_id, "bill_id": bill_id})
        raise _upstream_error(e)

    if outcome.status != "skipped":
        await _refresh_quietly(coordinator, request_id)
    return SettlementResponse.from_outcome(outcome)


@router.get("/bills/overview", response_model=OverviewResponse)
async def get_overview(
    request: Request,
    coordinator: SettlementCoordinator = Depends(get_coordinator),
):
    """
    Bill sections and totals for the recurring bill screen.

    Returns:
        Overdue / due this month / paid this month / future sections,
        this month's unpaid amount, next month's projection and the summary
        (from the bill service, or computed locally when it is unavailable)
    """
    request_id = get_request_id(request)
    try:
        bills = await coordinator.refresh()
    except (NetworkFailure, ServerRejected) as e:
        logging.error(f"Bill list fetch failed: {e}", extra={"request_id": request_id})
        raise _upstream_error(e)

    try:
        summary = await coordinator.bill_client.get_summary()
    except (NetworkFailure, ServerRejected) as e:
        logging.warning(f"Summary unavailable, computing locally: {e}", extra={"request_id": request_id})
        summary = None

    overview = build_overview(bills, coordinator.clock(), summary)
    overview.settling = [b.id for b in bills if coordinator.is_settling(b.id)]
    return OverviewResponse.from_overview(overview)


@router.post("/bills/{bill_id}/mark-paid", response_model=SettlementResponse)
async def mark_paid(
    bill_id: str,
    request: Request,
    coordinator: SettlementCoordinator = Depends(get_coordinator),
):
    """Mark a bill paid and record linked loan payment / savings deposit"""
    return await _settle("mark_paid", bill_id, coordinator, get_request_id(request))


@router.post("/bills/{bill_id}/unmark-paid", response_model=SettlementResponse)
async def unmark_paid(
    bill_id: str,
    request: Request,
    body: Optional[UnmarkRequest] = None,
    coordinator: SettlementCoordinator = Depends(get_coordinator),
):
    """Revert a payment; requires explicit confirmation"""
    if body is None or not body.confirmed:
        raise HTTPException(status_code=400, detail="Confirmation required to unmark a paid bill")
    return await _settle("unmark_paid", bill_id, coordinator, get_request_id(request))


@router.post("/bills/{bill_id}/retry", response_model=SettlementResponse)
async def retry_compensations(
    bill_id: str,
    coordinator: SettlementCoordinator = Depends(get_coordinator),
):
    """Re-run failed loan/savings actions of the latest settlement"""
    try:
        outcome = await coordinator.retry_compensations(bill_id)
    except BillNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SettlementInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SettlementResponse.from_outcome(outcome)
