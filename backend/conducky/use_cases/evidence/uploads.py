from dataclasses import dataclass
from typing import Final

from ...errors import ValidationError

MAX_EVIDENCE_BYTES: Final[int] = 10 * 1024 * 1024


@dataclass(frozen=True)
class EvidenceUpload:
    filename: str
    mimetype: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_upload(upload: EvidenceUpload) -> EvidenceUpload:
    if not upload.filename.strip():
        raise ValidationError("Evidence filename is required")
    if upload.size == 0:
        raise ValidationError("Evidence file is empty", details={"filename": upload.filename})
    if upload.size > MAX_EVIDENCE_BYTES:
        raise ValidationError(
            "Evidence file is too large",
            details={"filename": upload.filename, "max_bytes": MAX_EVIDENCE_BYTES},
        )
    return upload
