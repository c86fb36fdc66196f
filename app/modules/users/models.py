# Supabase table: users (see app/modules/auth/models.py for the full column list)
# This file documents how the users module reads and writes it
# Actual operations are handled via Supabase SDK in service.py

"""
Access rules enforced by UserService:

- Every query filters on workspace_id = caller's workspace; rows of another
  workspace behave as missing (404).
- users.permissions (jsonb) holds per-user overrides, e.g.
  {"leads": {"delete": false}} or {"leads.delete": false}; every leaf is boolean.
- users.permission_group_id must reference a permission_groups row of the
  same workspace.
- Invited users start with status 'pending' and an invitation token in
  auth_tokens; accepting the invitation sets the password and status 'active'.
"""
