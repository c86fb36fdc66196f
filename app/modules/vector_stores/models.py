# Supabase tables: vector_stores, vector_store_files
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

vector_stores:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- openai_id: text (not null, unique) - OpenAI vector store id ("vs_...")
- name: text (not null)
- created_at: timestamp (default: now())

vector_store_files:
- vector_store_id: uuid (foreign key to vector_stores.id, on delete cascade)
- file_id: text - OpenAI file id, must be a files row of the same workspace
- created_at: timestamp (default: now())
- primary key (vector_store_id, file_id)
"""
