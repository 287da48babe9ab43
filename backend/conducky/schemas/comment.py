import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1)
    visibility: str = "public"
    is_markdown: bool = False


class CommentUpdate(BaseModel):
    body: str | None = None
    visibility: str | None = None


class CommentRead(BaseModel):
    id: uuid.UUID
    report_id: uuid.UUID
    author_id: uuid.UUID | None
    body: str
    visibility: str
    is_markdown: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EvidenceRead(BaseModel):
    id: uuid.UUID
    report_id: uuid.UUID
    filename: str
    mimetype: str
    size: int
    uploader_id: uuid.UUID | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
