"""Create the initial administrator and one account per division office."""
from __future__ import annotations

import argparse
import re
import sys

from sqlalchemy.orm import Session

from helpdesk.core.security import hash_password
from helpdesk.db.session import SessionLocal, create_tables
from helpdesk.models.user import ROLE_ADMIN, ROLE_USER, User

DEPARTMENTS = (
    "Information and Communications Technology Unit",
    "Administrative Service - Personnel Unit",
    "Administrative Service - Records Unit",
    "Administrative Service - Cash Unit",
    "Administrative Service - Proper",
    "Finance Services - Budget Unit",
    "Finance Services - Accounting Unit",
    "Legal Services Unit",
    "Curriculum Implementation Division (CID) - ALS",
    "Curriculum Implementation Division (CID) - Proper",
    "Curriculum Implementation Division (CID) - Learning Resources",
    "School Governance and Operations Division (SGOD) - Planning and Research Section",
    "School Governance and Operations Division (SGOD) - Human Resource Development",
    "School Governance and Operations Division (SGOD) - Social Mobilization and Networking",
    "School Governance and Operations Division (SGOD) - School Management Monitoring and Evaluation",
    "School Governance and Operations Division (SGOD) - Education Facilities",
    "School Governance and Operations Division (SGOD) - DRRM",
    "School Governance and Operations Division (SGOD) - YFD",
    "School Governance and Operations Division (SGOD) - Main",
    "Office of the Schools Division Superintendent (OSDS)",
    "Office of the Assistant Schools Division Superintendent (OASDS)",
)


def department_email(department: str, domain: str) -> str:
    """Derive a login address from a department name."""
    return f"{re.sub(r'[^a-z0-9]', '', department.lower())}@{domain}"


def _ensure_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    department: str,
    role: str,
) -> bool:
    if db.query(User).filter(User.email == email).first() is not None:
        return False
    db.add(
        User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            department=department,
            role=role,
        )
    )
    return True


def seed(
    db: Session,
    *,
    admin_email: str,
    admin_password: str,
    department_password: str | None,
    domain: str,
) -> int:
    """Insert missing seed accounts and return how many were created."""
    created = int(
        _ensure_user(
            db,
            name="System Administrator",
            email=admin_email.lower(),
            password=admin_password,
            department="Information and Communications Technology Unit",
            role=ROLE_ADMIN,
        )
    )
    if department_password:
        for department in DEPARTMENTS:
            created += _ensure_user(
                db,
                name=department,
                email=department_email(department, domain),
                password=department_password,
                department=department,
                role=ROLE_USER,
            )
    db.commit()
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed help-desk accounts")
    parser.add_argument("--admin-email", default="admin@example.com")
    parser.add_argument("--admin-password", required=True)
    parser.add_argument(
        "--department-password",
        default=None,
        help="Also create one USER account per department with this password.",
    )
    parser.add_argument("--domain", default="example.com")
    parser.add_argument("--create-tables", action="store_true")
    args = parser.parse_args()

    if len(args.admin_password) < 8:
        print("[seed] ERROR: admin password must be at least 8 characters", file=sys.stderr)
        sys.exit(1)

    if args.create_tables:
        create_tables()
    with SessionLocal() as db:
        created = seed(
            db,
            admin_email=args.admin_email,
            admin_password=args.admin_password,
            department_password=args.department_password,
            domain=args.domain,
        )
    print(f"[seed] created {created} account(s)")


if __name__ == "__main__":
    main()
