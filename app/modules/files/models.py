# Supabase table: files (documents uploaded to OpenAI for assistants)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

files:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- openai_id: text (not null, unique) - OpenAI file id ("file-...")
- filename: text (not null)
- bytes: integer (nullable)
- purpose: text (default: 'assistants')
- created_at: timestamp (default: now())

The OpenAI account may hold files of other applications; only rows of this
table are ever listed or deleted.
"""
