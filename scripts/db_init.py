#!/usr/bin/env python3
"""
Database initialization script
"""
import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
current_dir = Path(__file__).parent
root_dir = current_dir.parent
sys.path.insert(0, str(root_dir))


async def init_database() -> None:
    """Create tables and the bootstrap administrator"""
    from photoshare.db.session import init_db
    from photoshare.config import settings

    print(f"Initializing database: {settings.database_url}")

    try:
        await init_db()
        print("Database initialized successfully")

        await create_admin()

    except Exception as e:
        print(f"Error initializing database: {e}")
        sys.exit(1)


async def create_admin() -> None:
    """Create the administrator account from settings unless it exists"""
    from photoshare.config import settings
    from photoshare.db.session import AsyncSessionLocal
    from photoshare.models.user import UserRole
    from photoshare.schemas.user_schema import UserCreate
    from photoshare.services.auth_service import AuthService

    async with AsyncSessionLocal() as db:
        auth_service = AuthService(db)
        existing = await auth_service.get_user_by_identifier(settings.ADMIN_USERNAME)
        if existing:
            print(f"Admin user already exists: {existing.username}")
            return

        admin_data = UserCreate(
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
        )
        admin = await auth_service.create_user(admin_data, role=UserRole.ADMIN)
        print(f"Created admin user: {admin.username}")


async def check_database_connection() -> bool:
    """Check if database is accessible"""
    from photoshare.db.session import engine
    from sqlalchemy import text

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        print("Database connection successful")
        return True
    except Exception as e:
        print(f"Database connection failed: {e}")
        return False


async def drop_database(confirm: bool = False) -> None:
    """Drop all database tables"""
    if not confirm:
        print("WARNING: This will drop ALL tables and data!")
        print("   Use --confirm flag to proceed")
        return

    from photoshare.db.session import engine
    from photoshare.models import Base

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        print("Database dropped successfully")
    except Exception as e:
        print(f"Error dropping database: {e}")


def main() -> None:
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="Database Initialization")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Create tables and the admin user")
    subparsers.add_parser("check", help="Check database connection")

    drop_parser = subparsers.add_parser("drop", help="Drop database (DANGEROUS!)")
    drop_parser.add_argument("--confirm", action="store_true", help="Confirm drop")

    subparsers.add_parser("admin", help="Create the admin user only")

    reset_parser = subparsers.add_parser("reset", help="Drop and reinitialize")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm reset")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "init":
            asyncio.run(init_database())

        elif args.command == "check":
            success = asyncio.run(check_database_connection())
            sys.exit(0 if success else 1)

        elif args.command == "drop":
            asyncio.run(drop_database(args.confirm))

        elif args.command == "admin":
            asyncio.run(create_admin())

        elif args.command == "reset":
            if not args.confirm:
                print("WARNING: This will drop ALL tables and data!")
                print("   Use --confirm flag to proceed")
                return

            asyncio.run(drop_database(True))
            asyncio.run(init_database())

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
