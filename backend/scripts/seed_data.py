"""
Seed Data Script - Creates sample clients, employees and managers for testing
Run: python -m scripts.seed_data
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal.repositories.mongo_client import create_indexes
from portal.repositories.directory_repo import DirectoryRepository
from portal.domain.models import Client, Employee
from portal.domain.enums import ActorKind, Availability, EmployeeRole
from portal.utils.jwt import issue_token
from portal.utils.time import utc_now


CLIENTS = [
    ("CLI-ACME", "Acme Retail", "projects@acme.io"),
    ("CLI-GLOBEX", "Globex Labs", "it@globex.io"),
]

# (ref, id, name, role, department, approves_departments, skills, availability)
EMPLOYEES = [
    ("EMP-DMGR", 1001, "Dana Reyes", EmployeeRole.MANAGER, "Development", ["Development"],
     ["Project Management", "Python"], Availability.AVAILABLE),
    ("EMP-SMGR", 1002, "Sam Okafor", EmployeeRole.MANAGER, "Design", ["Design", "Research"],
     ["UI/UX", "User Research"], Availability.AVAILABLE),
    ("EMP-QMGR", 1003, "Lee Park", EmployeeRole.MANAGER, "QA", ["Testing"],
     ["Test Automation"], Availability.BUSY),
    ("EMP-DEV1", 2001, "Alex Chen", EmployeeRole.EMPLOYEE, "Engineering", [],
     ["Python", "React", "Node.js", "API Development"], Availability.AVAILABLE),
    ("EMP-DEV2", 2002, "Priya Nair", EmployeeRole.EMPLOYEE, "Development", [],
     ["Flutter", "React Native", "Mobile Development"], Availability.BUSY),
    ("EMP-DES1", 2003, "Jordan Blake", EmployeeRole.EMPLOYEE, "UI/UX", [],
     ["Figma", "UI/UX", "Prototyping"], Availability.AVAILABLE),
    ("EMP-RES1", 2004, "Morgan Lee", EmployeeRole.EMPLOYEE, "R&D", [],
     ["User Research", "Market Analysis", "Data Analysis"], Availability.AVAILABLE),
    ("EMP-QA1", 2005, "Casey Diaz", EmployeeRole.EMPLOYEE, "Quality Assurance", [],
     ["Test Automation", "Selenium", "Manual Testing"], Availability.AVAILABLE),
]


def seed_directory():
    """Upsert sample directory records; safe to run repeatedly"""
    repo = DirectoryRepository()
    now = utc_now()

    for ref, name, email in CLIENTS:
        repo.upsert_client(Client(client_ref=ref, client_name=name, contact_email=email, created_at=now))
        print(f"  client   {ref:<10} {name}")

    for ref, employee_id, name, role, department, approves, skills, availability in EMPLOYEES:
        email = name.lower().replace(" ", ".") + "@portal.io"
        repo.upsert_employee(Employee(
            employee_ref=ref,
            employee_id=employee_id,
            name=name,
            email=email,
            role=role.value,
            department=department,
            approves_departments=approves,
            skills=skills,
            availability=availability,
        ))
        print(f"  {role.value:<8} {ref:<10} {name} ({department})")


def print_tokens():
    """Development session tokens for trying the API by hand"""
    print()
    print("=== Session Tokens ===")
    for ref, _, _ in CLIENTS:
        print(f"{ref}: Bearer {issue_token(ref, ActorKind.CLIENT)}")
    for ref, *_ in EMPLOYEES:
        print(f"{ref}: Bearer {issue_token(ref, ActorKind.EMPLOYEE)}")


if __name__ == "__main__":
    print("Creating indexes...")
    create_indexes()
    print("Seeding directory...")
    seed_directory()
    print_tokens()
    print()
    print("Seed complete!")
