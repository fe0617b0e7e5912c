#!/usr/bin/env python3
"""
Role Permission Seeding Script - Give schools their default role setup.

For each school this script:
1. Applies the default role configuration when the school has none
2. Creates the default permission set for every enabled standard role
   that has no permission row yet (existing rows are never changed)

Usage:
    python scripts/seed_role_permissions.py --school-id <id>   # Seed one school
    python scripts/seed_role_permissions.py --all              # Seed every school
    python scripts/seed_role_permissions.py --all --init-db    # Create missing tables first
"""

import argparse
import asyncio
import logging
import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from config.settings import get_settings
from database.async_engine import close_database, get_async_engine, get_session_factory, init_database
from middleware.correlation import configure_correlation_logging, correlation_id_context
from rbac.seed import SchoolNotFoundError, bootstrap_all_schools, bootstrap_school_roles
from rbac.service import create_permission_service

logger = logging.getLogger(__name__)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    engine = get_async_engine()

    if args.init_db:
        await init_database(engine)

    service = await create_permission_service(get_session_factory(engine), settings)

    try:
        if args.all:
            with correlation_id_context("seed-all"):
                results = await bootstrap_all_schools(service)
            seeded = sum(len(roles) for roles in results.values())
            logger.info(f"Seeded {seeded} role(s) across {len(results)} school(s)")
        else:
            with correlation_id_context(f"seed-{args.school_id}"):
                await bootstrap_school_roles(service, args.school_id)
        return 0

    except SchoolNotFoundError as e:
        logger.error(f"School not found: {e}")
        return 1

    finally:
        await service.close()
        await close_database()


def main():
    parser = argparse.ArgumentParser(description="Seed default role permissions")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--school-id", help="Seed a single school")
    target.add_argument("--all", action="store_true", help="Seed every school")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables before seeding")

    args = parser.parse_args()

    configure_correlation_logging(level=get_settings().log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
