"""Create the schema and seed a demo clinic for local development."""

import asyncio
from uuid import uuid4

import structlog
from sqlalchemy import insert, select

from clinic_portal.core.security import create_access_token
from clinic_portal.database import engine
from clinic_portal.middleware.logging import configure_logging
from clinic_portal.models import departments, doctors, metadata, users

configure_logging()
logger = structlog.get_logger()

DEMO_DEPARTMENTS = {
    "Cardiology": "Heart and vascular care",
    "Dermatology": "Skin conditions",
    "General Medicine": "Primary care and check-ups",
}

DEMO_DOCTORS = [
    ("ana.popescu@clinic.example", "Dr. Ana Popescu", "Cardiology", "Interventional cardiology"),
    ("mihai.ionescu@clinic.example", "Dr. Mihai Ionescu", "Dermatology", "Pediatric dermatology"),
    ("elena.radu@clinic.example", "Dr. Elena Radu", "General Medicine", "Family medicine"),
]


async def init_db() -> None:
    """Create all tables and insert demo staff when the directory is empty."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

        existing = await conn.execute(select(users.c.id).limit(1))
        if existing.first() is not None:
            logger.info("seed_skipped", reason="users table not empty")
            return

        department_ids = {name: uuid4() for name in DEMO_DEPARTMENTS}
        await conn.execute(
            insert(departments),
            [
                {"id": department_ids[name], "name": name, "description": description}
                for name, description in DEMO_DEPARTMENTS.items()
            ],
        )

        tokens = {}
        for email, full_name, department, specialization in DEMO_DOCTORS:
            doctor_id = uuid4()
            await conn.execute(
                insert(users).values(id=doctor_id, email=email, full_name=full_name, role="doctor")
            )
            await conn.execute(
                insert(doctors).values(
                    id=doctor_id,
                    department_id=department_ids[department],
                    specialization=specialization,
                )
            )
            tokens[email] = create_access_token(doctor_id)

        for email, full_name, role in [
            ("patient@clinic.example", "Demo Patient", "patient"),
            ("admin@clinic.example", "Clinic Admin", "admin"),
        ]:
            user_id = uuid4()
            await conn.execute(
                insert(users).values(id=user_id, email=email, full_name=full_name, role=role)
            )
            tokens[email] = create_access_token(user_id)

    logger.info("database_initialized", users=len(tokens))
    for email, token in tokens.items():
        print(f"{email}: {token}")


if __name__ == "__main__":
    asyncio.run(init_db())
