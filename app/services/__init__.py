# Services module
from app.services.audit_diff import compute_changes, snapshot
from app.services.audit_logger import record_audit_event, render_summary, status_transition_action
from app.services.audit_store import get_audit_logs, get_audit_log, get_entity_audit_history

__all__ = [
    "compute_changes",
    "snapshot",
    "record_audit_event",
    "render_summary",
    "status_transition_action",
    # Audit trail reads
    "get_audit_logs",
    "get_audit_log",
    "get_entity_audit_history",
]
