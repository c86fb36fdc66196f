# Supabase tables: permission_groups, permission_group_items
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

permission_groups:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- name: text (not null) - unique per workspace
- description: text (nullable)
- is_default: boolean (default: false)
- is_custom: boolean (default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

permission_group_items:
- id: uuid (primary key)
- group_id: uuid (foreign key to permission_groups.id, on delete cascade)
- permission_id: uuid (foreign key to permissions.id)
- enabled: boolean (not null) - false revokes a role default, true grants beyond it
- unique constraint on (group_id, permission_id)
"""
