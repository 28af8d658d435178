"""Seed database with demo data."""
from datetime import date, timedelta
import uuid

from siteflow.auth import get_password_hash
from siteflow.database import Database
from siteflow.models import Category, Organization, Project, Role, Task, User

DEMO_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

USERS = [
    ("admin@siteflow.local", "Admin", Role.ADMIN),
    ("pm@siteflow.local", "Pham Minh (PM)", Role.PM),
    ("supervisor@siteflow.local", "Tran Sau (Supervisor)", Role.SUPERVISOR),
    ("engineer@siteflow.local", "Le Anh (Engineer)", Role.ENGINEER),
    ("qc@siteflow.local", "Nguyen Quynh (QC)", Role.QC),
    ("accountant@siteflow.local", "Do Hoa (Accountant)", Role.ACCOUNTANT),
]
DEMO_PASSWORD = "siteflow-demo-123"

CATEGORIES = [
    ("Foundation", ["Excavation", "Rebar", "Concrete pour"]),
    ("Structure", ["Columns", "Slabs"]),
    ("Finishing", ["Plastering", "Painting"]),
]


def seed(database: Database | None = None) -> None:
    """Seed database with demo data."""
    database = database or Database.from_settings()
    database.init()

    with database.session_scope() as db:
        org = Organization(id=DEMO_ORG_ID, name="Demo Construction", slug="demo")
        db.add(org)
        db.flush()

        for email, name, role in USERS:
            db.add(
                User(
                    org_id=org.id,
                    email=email,
                    name=name,
                    role=role.value,
                    password_hash=get_password_hash(DEMO_PASSWORD),
                )
            )

        today = date.today()
        project = Project(
            org_id=org.id,
            name="Riverside Villa",
            status="in_progress",
            start_date=today - timedelta(days=30),
            end_date=today + timedelta(days=150),
            budget_total=2_500_000_000,
            currency="VND",
            address="12 River Road, District 2",
            scale={"area_m2": 320, "floors": 3},
            investor_name="Riverside Holdings",
            investor_phone="+84 90 000 0000",
        )
        db.add(project)
        db.flush()

        for order, (category_name, task_names) in enumerate(CATEGORIES):
            category = Category(org_id=org.id, project_id=project.id, name=category_name, order=order)
            db.add(category)
            db.flush()
            for task_order, task_name in enumerate(task_names):
                db.add(
                    Task(
                        org_id=org.id,
                        project_id=project.id,
                        category_id=category.id,
                        name=task_name,
                        estimated_hours=8 * (task_order + 1),
                        order=task_order,
                    )
                )

    database.dispose()
    print("Database seeded successfully")
    print(f"Demo users (password {DEMO_PASSWORD}):")
    for email, _, role in USERS:
        print(f"  {email} ({role.value})")


if __name__ == "__main__":
    seed()
