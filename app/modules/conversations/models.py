# Supabase tables: conversations, messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

conversations:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- lead_id: uuid (foreign key to leads.id, on delete cascade)
- agent_id: uuid (foreign key to agents.id, nullable)
- channel: text (nullable) - 'dispara_ja' | 'whatsapp_cloud'
- status: text (default: 'open')
- last_message_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (workspace_id, lead_id)

messages:
- id: uuid (primary key)
- conversation_id: uuid (foreign key to conversations.id, on delete cascade)
- content: text (not null)
- sender: text - 'user' (the lead) | 'agent' (AI) | 'human' (operator)
- is_manual: boolean (default: false)
- read: boolean (default: false)
- metadata: jsonb (nullable)
- created_at: timestamp (default: now())
"""
