from .assign import assign_report, update_report_triage
from .change_state import change_report_state
from .context import ReportContext
from .get_report import get_report, list_state_history
from .submit_report import submit_report
from .update_fields import update_report_fields

__all__ = [
    "ReportContext",
    "assign_report",
    "change_report_state",
    "get_report",
    "list_state_history",
    "submit_report",
    "update_report_fields",
    "update_report_triage",
]
