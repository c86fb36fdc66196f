# Supabase table: permissions (global catalog, not per workspace)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

permissions:
- id: uuid (primary key)
- key: text (unique, not null) - dot path into the capability map, e.g. "leads.delete"
- name: text (not null)
- description: text (nullable)
- category: text (not null) - e.g. "Leads", "Configurações"
- subcategory: text (nullable)
- default_value: boolean (default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Seeded from app/config/permissions_config.py by app/scripts/seed_permissions.py.
"""
