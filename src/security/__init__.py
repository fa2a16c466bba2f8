"""Security & GDPR module: eligibility, scheduling, erasure, audit."""

from src.security.audit import audit_ledger
from src.security.deletion_schedule import deletion_scheduler
from src.security.erasure import erasure_executor

__all__ = ["audit_ledger", "deletion_scheduler", "erasure_executor"]
