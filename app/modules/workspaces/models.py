# Supabase table: workspaces (columns documented in app/modules/auth/models.py)
# Workspaces are created together with their owner at registration (auth module).
# Deleting a workspace cascades to every tenant table through workspace_id foreign keys
# (see app/database/schema.sql).
