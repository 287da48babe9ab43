import uuid

from fastapi import APIRouter, Depends, status

from ..auth.principal import Principal
from ..dependencies import get_current_principal, get_report_context
from ..schemas.comment import CommentCreate, CommentRead, CommentUpdate, EvidenceRead
from ..use_cases.comments import add_comment, edit_comment, list_comments
from ..use_cases.evidence import delete_evidence, list_evidence
from ..use_cases.reports import ReportContext

router = APIRouter(prefix="/reports/{report_id}", tags=["comments"])


@router.get("/comments", response_model=list[CommentRead])
async def read_comments(
    report_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await list_comments(ctx, principal, report_id)


@router.post("/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def create_comment(
    report_id: uuid.UUID,
    payload: CommentCreate,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await add_comment(
        ctx,
        principal,
        report_id,
        payload.body,
        visibility=payload.visibility,
        is_markdown=payload.is_markdown,
    )


@router.patch("/comments/{comment_id}", response_model=CommentRead)
async def update_comment(
    report_id: uuid.UUID,
    comment_id: uuid.UUID,
    payload: CommentUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await edit_comment(
        ctx,
        principal,
        report_id,
        comment_id,
        body=payload.body,
        visibility=payload.visibility,
    )


@router.get("/evidence", response_model=list[EvidenceRead])
async def read_evidence(
    report_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
):
    return await list_evidence(ctx, principal, report_id)


@router.delete("/evidence/{evidence_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_evidence(
    report_id: uuid.UUID,
    evidence_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ReportContext = Depends(get_report_context),
) -> None:
    await delete_evidence(ctx, principal, report_id, evidence_id)
