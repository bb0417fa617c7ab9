"""
Seed script to create a school with its roles, first admin user and grading defaults.

Run once (e.g. after schema_check) with env set:
  SEED_SCHOOL_NAME="Kilimani Primary"
  SEED_ADMIN_EMAIL=admin@school.ac.ke
  SEED_ADMIN_PASSWORD=YourSecurePassword

Creates:
- core.schools: the school (if not exists)
- auth.roles: SCHOOL_ADMIN, BURSAR, TEACHER with fees/grading/reports permissions
- auth.users: one SCHOOL_ADMIN user (if email/password set)
- school.grading_systems: default summative and CBC systems
- school.aggregation_configs: OPENER / CAT / ASSIGNMENT defaults
"""
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.api.v1.aggregation.service import create_default_configs
from educore.api.v1.grading.service import ensure_default_grading_systems
from educore.auth.models import Role, User
from educore.auth.security import create_access_token, hash_password
from educore.core.config import settings
from educore.core.models import School
from educore.core.tenant import TenantContext
from educore.db.session import AsyncSessionLocal

DEFAULT_SCHOOL_NAME = "Demo School"
DEFAULT_ADMIN_FULL_NAME = "School Admin"

_CRUD = {"create": True, "read": True, "update": True, "delete": True}

ROLE_PERMISSIONS = {
    "SCHOOL_ADMIN": {"fees": _CRUD, "grading": _CRUD, "reports": {"read": True}},
    "BURSAR": {
        "fees": {"create": True, "read": True, "update": True, "delete": False},
        "reports": {"read": True},
    },
    "TEACHER": {"grading": {"read": True}, "reports": {"read": True}},
}


async def seed_school(db: AsyncSession) -> None:
    # 1. Ensure school exists
    name = settings.seed_school_name or DEFAULT_SCHOOL_NAME
    school = (await db.execute(select(School).where(School.name == name))).scalar_one_or_none()
    if not school:
        school = School(name=name, status="ACTIVE")
        db.add(school)
        await db.flush()
        print("Created school:", name)
    else:
        print("School already exists:", name)

    # 2. Roles
    for role_name, permissions in ROLE_PERMISSIONS.items():
        role = (
            await db.execute(select(Role).where(Role.school_id == school.id, Role.name == role_name))
        ).scalar_one_or_none()
        if role is None:
            db.add(Role(school_id=school.id, name=role_name, permissions=permissions))
            print("Created role:", role_name)
        else:
            role.permissions = permissions

    # 3. Grading defaults
    await ensure_default_grading_systems(db, school.id)
    await db.flush()

    email = settings.seed_admin_email
    password = settings.seed_admin_password
    if not email or not password:
        await db.commit()
        print("No admin email/password; skipping admin user and aggregation defaults.")
        return

    # 4. Admin user
    admin = (
        await db.execute(select(User).where(User.school_id == school.id, User.email == email))
    ).scalar_one_or_none()
    if not admin:
        admin = User(
            school_id=school.id,
            full_name=DEFAULT_ADMIN_FULL_NAME,
            email=email,
            password_hash=hash_password(password),
            role="SCHOOL_ADMIN",
            status="ACTIVE",
        )
        db.add(admin)
        await db.flush()
        print("Created SCHOOL_ADMIN user:", email)
    else:
        admin.role = "SCHOOL_ADMIN"
        admin.password_hash = hash_password(password)
        print("Updated existing user to SCHOOL_ADMIN:", email)
    await db.commit()

    # 5. Aggregation defaults (commits)
    ctx = TenantContext(school_id=school.id, role=admin.role, user_id=admin.id)
    created = await create_default_configs(db, ctx)
    print(f"Created {len(created)} default aggregation configs.")

    token = create_access_token(
        subject={"user_id": admin.id, "school_id": school.id, "role": admin.role}
    )
    print("School seed done. Access token for", email)
    print(token)


async def main() -> None:
    async with AsyncSessionLocal() as db:
        try:
            await seed_school(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
