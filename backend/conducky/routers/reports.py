import uuid

from fastapi import APIRouter, Depends, status

from ..auth.principal import Principal
from ..dependencies import (
    get_anonymous_reports_enabled,
    get_current_principal,
    get_optional_principal,
    get_report_context,
)
from ..domain.workflow import REQUIREMENTS, allowed_transitions
from ..schemas.report import (
    ReportAssignment,
    ReportCreate,
    ReportFieldsUpdate,
    ReportRead,
    ReportStateChange,
    ReportTriageUpdate,
    StateHistoryRead,
    TransitionRead,
    WorkflowRead,
)
from ..use_cases.reports import (
    ReportContext,
    assign_report,
    change_report_state,
    get_report,
    list_state_history,
    submit_report,
    update_report_fields,
    update_report_triage,
)

router = APIRouter(tags=["reports"])


def _allowed(state: str) -> list[str]:
    return sorted(target.value for target in allowed_transitions(state))


@router.post(
    "/events/{event_id}/reports",
    response_model=ReportRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_report(
    event_id: uuid.UUID,
    payload: ReportCreate,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await submit_report(
        ctx,
        principal,
        event_id=event_id,
        title=payload.title,
        description=payload.description,
        type=payload.type,
        location=payload.location,
        contact_preference=payload.contact_preference,
        incident_at=payload.incident_at,
        parties=payload.parties,
    )


@router.post(
    "/events/{event_id}/reports/anonymous",
    response_model=ReportRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_anonymous_report(
    event_id: uuid.UUID,
    payload: ReportCreate,
    principal: Principal = Depends(get_optional_principal),
    ctx: ReportContext = Depends(get_report_context),
    anonymous_enabled: bool = Depends(get_anonymous_reports_enabled),
):
    """Submit without a bearer token. A signed-in caller is treated as on the regular route."""
    return await submit_report(
        ctx,
        principal,
        event_id=event_id,
        title=payload.title,
        description=payload.description,
        type=payload.type,
        location=payload.location,
        contact_preference=payload.contact_preference,
        incident_at=payload.incident_at,
        parties=payload.parties,
        allow_anonymous=anonymous_enabled,
    )


@router.get("/reports/{report_id}", response_model=ReportRead)
async def read_report(
    report_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await get_report(ctx, principal, report_id)


@router.get("/reports/{report_id}/workflow", response_model=WorkflowRead)
async def read_workflow(
    report_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
) -> WorkflowRead:
    report = await get_report(ctx, principal, report_id)
    allowed = _allowed(report.state)
    return WorkflowRead(
        state=report.state,
        allowed_transitions=allowed,
        requirements={
            target.value: {"notes": requirement.notes, "assignment": requirement.assignment}
            for target, requirement in REQUIREMENTS.items()
            if target.value in allowed
        },
    )


@router.patch("/reports/{report_id}/state", response_model=TransitionRead)
async def change_state(
    report_id: uuid.UUID,
    payload: ReportStateChange,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
) -> TransitionRead:
    result = await change_report_state(
        ctx,
        principal,
        report_id,
        payload.state,
        notes=payload.notes,
        assignee_id=payload.assigned_responder_id,
    )
    return TransitionRead(
        report=ReportRead.model_validate(result.report),
        history_entry=StateHistoryRead.model_validate(result.history_entry),
        allowed_transitions=_allowed(result.report.state),
    )


@router.patch("/reports/{report_id}/assignment", response_model=ReportRead)
async def change_assignment(
    report_id: uuid.UUID,
    payload: ReportAssignment,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await assign_report(ctx, principal, report_id, payload.assigned_responder_id)


@router.patch("/reports/{report_id}/triage", response_model=ReportRead)
async def change_triage(
    report_id: uuid.UUID,
    payload: ReportTriageUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await update_report_triage(
        ctx,
        principal,
        report_id,
        severity=payload.severity,
        resolution=payload.resolution,
    )


@router.patch("/reports/{report_id}", response_model=ReportRead)
async def edit_report(
    report_id: uuid.UUID,
    payload: ReportFieldsUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await update_report_fields(
        ctx, principal, report_id, payload.model_dump(exclude_unset=True)
    )


@router.get("/reports/{report_id}/history", response_model=list[StateHistoryRead])
async def read_history(
    report_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await list_state_history(ctx, principal, report_id)
