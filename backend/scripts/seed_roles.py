"""
Seed the canonical role rows and, optionally, a first SuperAdmin.

Run once after the initial migration. Existing rows are left alone, so the
script is safe to re-run.

Usage:
    python -m scripts.seed_roles
    python -m scripts.seed_roles --super-admin owner@example.com
"""
import argparse
import asyncio
import os
import sys

# Add parent directory to path to import conducky modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select  # noqa: E402

from conducky.auth import rbac_contract  # noqa: E402
from conducky.crud.roles import RoleRepository  # noqa: E402
from conducky.database import dispose_engine, get_session_factory  # noqa: E402
from conducky.models import User, UserEventRole  # noqa: E402

# Org roles live on organization_memberships.role, not in the roles table.
SEEDED_ROLES = sorted(
    rbac_contract.EVENT_ROLES | rbac_contract.GLOBAL_ROLES,
    key=lambda role: rbac_contract.ROLE_RANK[role],
)


async def seed_roles(super_admin_email: str | None = None) -> None:
    async with get_session_factory()() as session:
        async with session.begin():
            role_repo = RoleRepository(session)

            print("Seeding roles...")
            for role_name in SEEDED_ROLES:
                role = await role_repo.get_or_create(role_name)
                print(f"  {role.name} (rank {rbac_contract.ROLE_RANK[role_name]})")

            if super_admin_email is None:
                return

            result = await session.execute(
                select(User).where(User.email == super_admin_email.strip().lower())
            )
            user = result.scalar_one_or_none()
            if user is None:
                print(f"\nUser '{super_admin_email}' not found, skipping SuperAdmin grant")
                return

            super_admin = await role_repo.get_or_create(rbac_contract.RoleName.SUPER_ADMIN)
            existing = await session.execute(
                select(UserEventRole).where(
                    UserEventRole.user_id == user.id,
                    UserEventRole.event_id.is_(None),
                    UserEventRole.role_id == super_admin.id,
                )
            )
            if existing.unique().scalar_one_or_none() is not None:
                print(f"\n{user.email} is already SuperAdmin")
                return
            await role_repo.assign(user.id, rbac_contract.RoleName.SUPER_ADMIN)
            print(f"\nGranted SuperAdmin to {user.email}")

    print("\nDone.")


async def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--super-admin", metavar="EMAIL", default=None)
    args = parser.parse_args(argv)
    try:
        await seed_roles(args.super_admin)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
