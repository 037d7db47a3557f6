"""Create a tenant and its first admin account.

The schema is created on connect, so this also works against an empty
cluster. The admin is created with the admin role explicitly.

Usage:
    python -m scripts.bootstrap_tenant "Acme Academy" acme admin \
        --email admin@acme-academy.com --first-name Ada --last-name Admin
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path


# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from src.auth.permissions import UserRole
from src.auth.schemas import RegisterRequest
from src.auth.service import AuthError, AuthService
from src.config.settings import get_settings
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.tenants.schemas import CreateTenantRequest
from src.tenants.service import TenantError, TenantService


logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("name", help="Tenant display name")
    parser.add_argument("subdomain", help="Unique tenant subdomain")
    parser.add_argument("username", help="Admin username")
    parser.add_argument("--email", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument(
        "--password", help="Admin password (prompted for when omitted)"
    )
    return parser.parse_args(argv)


async def bootstrap(args: argparse.Namespace) -> int:
    """Create the tenant and admin. Returns the process exit code."""
    settings = get_settings()
    password = args.password or getpass.getpass("Admin password: ")

    session = await init_async_cassandra()
    try:
        tenant_service = TenantService(session, settings.cassandra_keyspace)
        auth_service = AuthService(
            session, settings.cassandra_keyspace, tenant_service
        )

        tenant = await tenant_service.create_tenant(
            CreateTenantRequest(name=args.name, subdomain=args.subdomain)
        )
        logger.info(
            "tenant_created", tenant_id=str(tenant.id), subdomain=tenant.subdomain
        )

        admin = await auth_service.register_user(
            RegisterRequest(
                username=args.username,
                password=password,
                first_name=args.first_name,
                last_name=args.last_name,
                email=args.email,
                tenant_id=tenant.id,
            ),
            role=UserRole.ADMIN,
        )
        logger.info(
            "admin_created",
            tenant_id=str(tenant.id),
            user_id=str(admin.id),
            role=admin.role,
        )
    except (TenantError, AuthError) as e:
        logger.error("bootstrap_failed", code=e.code, error=e.message)
        return 1
    finally:
        await shutdown_async_cassandra()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(bootstrap(parse_args())))
