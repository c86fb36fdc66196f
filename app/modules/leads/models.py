# Supabase tables: leads, lead_tags, lead_custom_fields
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

leads:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- name: text (nullable)
- phone: text (not null) - normalized digits, or "<digits>_origin<origin_id>"
- email: text (nullable)
- photo: text (nullable)
- notes: text (nullable)
- value: numeric (nullable)
- source: text (nullable)
- origin_id: uuid (nullable) - pipeline origin
- stage_id: uuid (nullable) - pipeline stage
- owner_id: uuid (foreign key to users.id, nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (workspace_id, phone)

lead_tags:
- lead_id: uuid (foreign key to leads.id, on delete cascade)
- tag_id: uuid (foreign key to tags.id, on delete cascade)
- primary key (lead_id, tag_id)

lead_custom_fields:
- id: uuid (primary key)
- lead_id: uuid (foreign key to leads.id, on delete cascade)
- field_id: uuid (foreign key to contact_fields.id, on delete cascade)
- value: jsonb
- unique constraint on (lead_id, field_id)
"""
