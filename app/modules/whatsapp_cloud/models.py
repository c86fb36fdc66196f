# Supabase table: whatsapp_cloud_connections
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

whatsapp_cloud_connections:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- agent_id: uuid (foreign key to agents.id, on delete cascade)
- phone_number_id: text (not null) - Meta phone number id
- display_phone_number: text (nullable)
- access_token: text (not null) - never returned by the API
- webhook_url: text - {BASE_URL}/webhook/whatsapp-cloud/{phone_number_id}
- verify_token: text - echoed back by Meta during webhook verification
- status: text - 'active' | 'inactive'
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (workspace_id, phone_number_id)

Inbound webhook messages create leads, conversations (channel 'whatsapp_cloud')
and unread messages with sender 'user' in the connection's workspace.
"""
