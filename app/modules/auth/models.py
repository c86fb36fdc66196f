# Supabase tables: workspaces, users, auth_tokens
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py (DDL in app/database/schema.sql)

"""
Expected Supabase table structure:

workspaces:
- id: uuid (primary key)
- name: text (not null)
- subdomain: text (unique, not null) - email local part, lowercased, alphanumerics only
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

users:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- email: text (unique, lowercased)
- name: text (nullable)
- password_hash: text (bcrypt)
- role: text (not null, default: 'user') - values: owner, admin, user
- status: text (not null, default: 'pending') - values: pending, active
- permissions: jsonb (nullable) - per-user overrides, applied after the group
- permission_group_id: uuid (foreign key to permission_groups.id, nullable)
- email_verified_at: timestamp (nullable)
- last_login_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

auth_tokens:
- id: uuid (primary key)
- selector: text (unique, nullable) - non-secret lookup half of the raw token
- token_hash: text (bcrypt of the secret half)
- purpose: text - values: verification, password_reset, invitation
- email: text (lowercased)
- user_id: uuid (foreign key to users.id, on delete cascade, nullable)
- workspace_id: uuid (nullable)
- expires_at: timestamp (not null)
- created_at: timestamp (default: now())
"""
