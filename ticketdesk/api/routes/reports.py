from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from ticketdesk.dependencies.auth import CurrentActor
from ticketdesk.dependencies.tickets import get_reports
from ticketdesk.tickets.reporting import TicketReports

router = APIRouter(prefix="/reports", tags=["reports"])

ReportsDep = Annotated[TicketReports, Depends(get_reports)]


class DashboardStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_tickets: int
    open_tickets: int
    pending_tickets: int
    in_progress_tickets: int
    resolved_tickets: int
    closed_tickets: int
    overdue_tickets: int
    tickets_due_today: int
    my_assigned_tickets: int
    average_resolution_time: float


class SlaReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: int
    customer_name: str
    total_tickets: int
    tickets_within_sla: int
    tickets_breached_sla: int
    average_resolution_time: float
    sla_compliance_percentage: float


@router.get("/dashboard", response_model=DashboardStatsResponse)
async def dashboard(reports: ReportsDep, actor: CurrentActor) -> DashboardStatsResponse:
    return DashboardStatsResponse.model_validate(await reports.dashboard_stats(actor))


@router.get("/sla", response_model=list[SlaReportResponse])
async def sla_report(reports: ReportsDep, _: CurrentActor) -> list[SlaReportResponse]:
    return [SlaReportResponse.model_validate(row) for row in await reports.sla_report()]
