import asyncio
import os
import sys
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()
from app.db.database import AsyncSessionLocal, init_db
from app.crud.user import get_user_by_email, create_user
from app.core.security import verify_password, get_password_hash
from app.schemas.user import UserCreate
from app.schemas.enums import AccountStatus, UserRole
from app.models.user import utc_now


async def create_admin_if_not_exists(email: str, password: str, full_name: str = "System Administrator"):
    """Create an approved super admin, or repair an existing account with that email"""
    await init_db()
    async with AsyncSessionLocal() as session:
        existing_admin = await get_user_by_email(session, email)

        if existing_admin:
            print(f"User {email} found. Checking admin status...")
            needs_update = False

            if existing_admin.role != UserRole.SUPER_ADMIN:
                print("  - Setting role = super_admin")
                existing_admin.role = UserRole.SUPER_ADMIN
                needs_update = True

            if existing_admin.account_status != AccountStatus.APPROVED:
                print("  - Approving account")
                existing_admin.account_status = AccountStatus.APPROVED
                existing_admin.approved_at = utc_now()
                needs_update = True

            if not verify_password(password, existing_admin.hashed_password):
                print("  - Updating password hash")
                existing_admin.hashed_password = get_password_hash(password)
                needs_update = True

            if needs_update:
                session.add(existing_admin)
                await session.commit()
                print(f"Admin user {email} has been updated.")
            else:
                print(f"Admin {email} already exists with correct configuration.")
            return

        print(f"Creating new admin user: {email}")
        user_data = UserCreate(email=email, password=password, full_name=full_name, role=UserRole.SUPER_ADMIN)
        await create_user(session, user_data, account_status=AccountStatus.APPROVED)
        print(f"Admin user {email} created successfully.")


if __name__ == "__main__":
    admin_email = sys.argv[1] if len(sys.argv) > 1 else os.getenv("ADMIN_EMAIL")
    admin_password = sys.argv[2] if len(sys.argv) > 2 else os.getenv("ADMIN_PASSWORD")

    if not admin_email or not admin_password:
        print("Usage: python -m app.scripts.create_admin <email> <password> (or set ADMIN_EMAIL / ADMIN_PASSWORD)")
        sys.exit(1)

    asyncio.run(create_admin_if_not_exists(admin_email, admin_password))
