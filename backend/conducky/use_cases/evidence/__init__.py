from .evidence import add_evidence, delete_evidence, list_evidence
from .uploads import EvidenceUpload

__all__ = ["EvidenceUpload", "add_evidence", "delete_evidence", "list_evidence"]
