"""
Normalize Departments Script - Rewrites employee department labels to their
standard display names (e.g. "QA" -> "Testing", "R&D" -> "Research").

Labels that are not a known alias are left as they are.

Run: python -m scripts.normalize_departments [--dry-run]
"""
import sys
import os
import argparse
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal.domain import departments
from portal.repositories.directory_repo import DirectoryRepository


def normalize_employee_departments(dry_run: bool = False) -> int:
    """Returns the number of employees whose labels changed"""
    repo = DirectoryRepository()
    changed = 0

    for employee in repo.list_employees(active_only=False):
        department = departments.display_label(employee.department)
        approves = []
        for label in employee.approves_departments:
            display = departments.display_label(label)
            if display not in approves:
                approves.append(display)

        if department == employee.department and approves == employee.approves_departments:
            continue

        changed += 1
        print(f"  {employee.employee_ref}: {employee.department!r} -> {department!r}, "
              f"approves {employee.approves_departments} -> {approves}")
        if not dry_run:
            repo.set_employee_departments(employee.employee_ref, department, approves)

    return changed


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Normalize employee department labels")
    parser.add_argument("--dry-run", action="store_true", help="Print changes without writing them")
    args = parser.parse_args()

    count = normalize_employee_departments(dry_run=args.dry_run)
    suffix = " (dry run)" if args.dry_run else ""
    print(f"{count} employee(s) updated{suffix}")
