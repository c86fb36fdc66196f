# Supabase table: agents
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

agents:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, on delete cascade)
- name: text (not null)
- description, system_prompt, internal_name, initial_message, voice_tone: text (nullable)
- image_url: text (default: '/images/avatar/avatar.png')
- model: text (default: 'gpt-4-turbo') - 'gpt-4o' | 'gpt-4o-mini' | 'gpt-4-turbo'
- language: text (default: 'pt-BR')
- timezone: text (default: 'America/Sao_Paulo')
- temperature: float (default: 0.7)
- frequency_penalty, presence_penalty: float (default: 0)
- top_p: float (default: 1.0)
- max_messages: integer (default: 20)
- max_tokens: integer (default: 5000)
- response_format: text (default: 'text')
- company_name, company_sector, company_website, company_description: text (nullable)
- personality_objective, agent_skills, agent_function, product_info, restrictions: text (nullable)
- assistant_id: text (nullable) - OpenAI assistant
- vector_store_id: text (nullable) - OpenAI vector store used for file_search
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
