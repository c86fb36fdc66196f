# Supabase table: system_configs (per-workspace settings such as the OpenAI key)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

system_configs:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- key: text (not null) - e.g. 'OPENAI_API_KEY'
- value: text (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (workspace_id, key)

Stored values are never returned by the API; GET only reports whether a key is configured.
"""
