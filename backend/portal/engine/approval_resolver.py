"""Approval Resolver - Pick the ledger entry a department decision applies to

Managers may omit the department when signing off. Both the approve and the
reject path call resolve_department() and branch on its tagged result:

    Resolved(index, department)   exactly one entry to act on
    Ambiguous(candidates)         several entries qualify, caller must choose
    Unauthorized(department)      actor has no authority (over the named one)
    Ineligible(department, reason) entry missing or already in that state
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from ..domain import departments
from ..domain.enums import LedgerDecision
from ..domain.models import ApprovalEntry


@dataclass(frozen=True)
class Resolved:
    index: int
    department: str


@dataclass(frozen=True)
class Ambiguous:
    candidates: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Unauthorized:
    department: Optional[str] = None


@dataclass(frozen=True)
class Ineligible:
    department: str
    reason: str


Resolution = Union[Resolved, Ambiguous, Unauthorized, Ineligible]

NOT_REQUIRED = "not_required"
ALREADY_APPROVED = "already_approved"
ALREADY_REJECTED = "already_rejected"


def is_eligible(entry: ApprovalEntry, decision: LedgerDecision) -> bool:
    """An entry can be approved unless approved, rejected unless rejected"""
    if decision == LedgerDecision.APPROVE:
        return not entry.approved
    return not entry.rejected


def resolve_department(
    ledger: List[ApprovalEntry],
    approves_departments: Iterable[str],
    decision: LedgerDecision,
    requested: Optional[str] = None
) -> Resolution:
    """Resolve which ledger entry a department decision targets"""
    authority = departments.expand_all(approves_departments)

    if requested is not None and requested.strip():
        if not (departments.expand_aliases(requested) & authority):
            return Unauthorized(department=requested)

        matching = [
            (index, entry) for index, entry in enumerate(ledger)
            if departments.matches(requested, entry.department)
        ]
        if not matching:
            return Ineligible(department=requested, reason=NOT_REQUIRED)

        for index, entry in matching:
            if is_eligible(entry, decision):
                return Resolved(index=index, department=entry.department)

        reason = ALREADY_APPROVED if decision == LedgerDecision.APPROVE else ALREADY_REJECTED
        return Ineligible(department=matching[0][1].department, reason=reason)

    eligible = [
        (index, entry) for index, entry in enumerate(ledger)
        if is_eligible(entry, decision) and departments.expand_aliases(entry.department) & authority
    ]
    if not eligible:
        return Unauthorized()
    if len(eligible) > 1:
        return Ambiguous(candidates=[entry.department for _, entry in eligible])

    index, entry = eligible[0]
    return Resolved(index=index, department=entry.department)
