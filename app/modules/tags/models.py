# Supabase table: tags (lead labels; links live in lead_tags, see app/modules/leads/models.py)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

tags:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- name: text (not null)
- color: text (not null)
- description: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique index on (workspace_id, lower(name))
"""
