"""Approval resolver: which ledger entry a department decision applies to"""
from portal.domain.enums import LedgerDecision
from portal.domain.models import ApprovalEntry
from portal.engine.approval_resolver import (
    resolve_department, Resolved, Ambiguous, Unauthorized, Ineligible,
    NOT_REQUIRED, ALREADY_APPROVED, ALREADY_REJECTED
)

APPROVE = LedgerDecision.APPROVE
REJECT = LedgerDecision.REJECT


def ledger(*entries):
    result = []
    for entry in entries:
        if isinstance(entry, str):
            result.append(ApprovalEntry(department=entry))
        else:
            department, approved, rejected = entry
            result.append(ApprovalEntry(department=department, approved=approved, rejected=rejected))
    return result


class TestOmittedDepartment:

    def test_single_eligible_department_is_selected(self):
        result = resolve_department(ledger("Design", "Development"), ["dev"], APPROVE)
        assert result == Resolved(index=1, department="Development")

    def test_several_eligible_departments_are_ambiguous(self):
        result = resolve_department(ledger("Design", "QA", "Development"), ["Testing", "Engineering"], APPROVE)
        assert isinstance(result, Ambiguous)
        assert result.candidates == ["QA", "Development"]

    def test_no_authority_is_unauthorized(self):
        result = resolve_department(ledger("Design"), ["Testing"], APPROVE)
        assert result == Unauthorized()

    def test_already_approved_entries_are_skipped(self):
        entries = ledger(("Design", True, False), "Development")
        assert resolve_department(entries, ["Design", "Development"], APPROVE) == Resolved(1, "Development")

    def test_reject_can_target_an_approved_entry(self):
        entries = ledger(("Design", True, False))
        assert resolve_department(entries, ["UI/UX"], REJECT) == Resolved(0, "Design")

    def test_nothing_left_to_decide_is_unauthorized(self):
        entries = ledger(("Design", False, True))
        assert resolve_department(entries, ["Design"], REJECT) == Unauthorized()


class TestNamedDepartment:

    def test_alias_of_ledger_label_resolves(self):
        result = resolve_department(ledger("QA/Testing"), ["Testing"], APPROVE, requested="quality assurance")
        assert result == Resolved(index=0, department="QA/Testing")

    def test_department_outside_authority(self):
        result = resolve_department(ledger("Design"), ["Development"], APPROVE, requested="Design")
        assert result == Unauthorized(department="Design")

    def test_department_not_on_the_ledger(self):
        result = resolve_department(ledger("Design"), ["Research"], APPROVE, requested="Research")
        assert result == Ineligible(department="Research", reason=NOT_REQUIRED)

    def test_already_approved(self):
        result = resolve_department(ledger(("Design", True, False)), ["Design"], APPROVE, requested="design")
        assert result == Ineligible(department="Design", reason=ALREADY_APPROVED)

    def test_already_rejected(self):
        result = resolve_department(ledger(("Design", False, True)), ["Design"], REJECT, requested="Design")
        assert result == Ineligible(department="Design", reason=ALREADY_REJECTED)

    def test_blank_name_behaves_like_omitted(self):
        result = resolve_department(ledger("Design"), ["Design"], APPROVE, requested="  ")
        assert result == Resolved(0, "Design")
