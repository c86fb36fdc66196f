"""
Seed Permissions Script
Upserts the global permission catalog from app/config/permissions_config.py.
Run after migrations: python -m app.scripts.seed_permissions
"""

from app.config.permissions_config import PERMISSION_CATALOG
from app.database.supabase_client import create_supabase_client
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_permissions(supabase: Client) -> dict:
    """Insert missing catalog entries and refresh the display data of existing ones"""
    logger.info("Seeding permissions...")
    created_count = 0
    updated_count = 0

    for perm in PERMISSION_CATALOG:
        existing = supabase.table("permissions")\
            .select("id")\
            .eq("key", perm["key"])\
            .limit(1)\
            .execute()

        if existing.data:
            supabase.table("permissions")\
                .update({
                    "name": perm["name"],
                    "description": perm["description"],
                    "category": perm["category"],
                    "subcategory": perm["subcategory"],
                    "default_value": perm["default_value"],
                })\
                .eq("key", perm["key"])\
                .execute()
            updated_count += 1
            logger.debug(f"Updated permission: {perm['key']}")
        else:
            supabase.table("permissions").insert(perm).execute()
            created_count += 1
            logger.debug(f"Created permission: {perm['key']}")

    logger.info(f"Permissions seeded: {created_count} created, {updated_count} updated")
    return {"created": created_count, "updated": updated_count}


def main():
    seed_permissions(create_supabase_client())


if __name__ == "__main__":
    main()
