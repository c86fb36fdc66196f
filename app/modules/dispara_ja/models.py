# Supabase tables: dispara_ja_connections, dispara_ja_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

dispara_ja_connections:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- agent_id: uuid (foreign key to agents.id, on delete cascade)
- provider: text (default: 'DISPARA_JA')
- secret: text (not null) - never returned by the API
- token: text (nullable)
- sid: text (default: '3')
- phone_number: text (nullable)
- unique: text - provider account id used when sending
- status: text - 'ativo' | 'pendente' | 'inativo'
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

dispara_ja_logs:
- id: uuid (primary key)
- connection_id: uuid (foreign key to dispara_ja_connections.id, on delete cascade)
- message: text
- type: text (default: 'info')
- created_at: timestamp (default: now())
"""
