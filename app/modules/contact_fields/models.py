# Supabase table: contact_fields (custom lead fields; values in lead_custom_fields)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

contact_fields:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- name: text (not null)
- type: text - 'text' | 'number' | 'date' | 'select' | 'checkbox' | 'textarea'
- required: boolean (default: false)
- options: jsonb (nullable) - list of strings, required for 'select'
- placeholder: text (nullable)
- default_value: jsonb (nullable)
- description: text (nullable)
- order: integer (default: 0)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique index on (workspace_id, lower(name))
"""
