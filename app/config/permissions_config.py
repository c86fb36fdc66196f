"""
Permissions and Roles Configuration
Defines the capability matrix (resource -> action -> bool) for each built-in role
and the global permission catalog derived from it.
Used by the permission resolver and by the catalog seed script.
"""

import copy

SUPERUSER_ROLES = ("owner", "admin")
FALLBACK_ROLE = "user"

# Resources and their actions, with catalog display data
RESOURCES = {
    "users": {
        "actions": ["view", "create", "update", "delete", "manage"],
        "category": "Usuários",
        "description": "Gerenciamento de usuários do workspace"
    },
    "leads": {
        "actions": ["view", "create", "update", "delete"],
        "category": "Leads",
        "description": "Contatos e oportunidades do CRM"
    },
    "conversations": {
        "actions": ["view", "reply", "delete"],
        "category": "Conversas",
        "description": "Conversas e mensagens com leads"
    },
    "agents": {
        "actions": ["view", "create", "update", "delete"],
        "category": "Agentes",
        "description": "Agentes de IA e bases de conhecimento"
    },
    "settings": {
        "actions": ["view", "update"],
        "category": "Configurações",
        "description": "Configurações do workspace, canais e integrações"
    }
}

ACTION_LABELS = {
    "view": "Visualizar",
    "create": "Criar",
    "update": "Editar",
    "delete": "Excluir",
    "manage": "Gerenciar",
    "reply": "Responder",
}


def _matrix(granted=None, default=False):
    """Build a full resource/action map; `granted` maps resource -> actions set to True."""
    granted = granted or {}
    matrix = {}
    for resource, config in RESOURCES.items():
        allowed = granted.get(resource, ())
        matrix[resource] = {
            action: (default or allowed == "*" or action in allowed)
            for action in config["actions"]
        }
    return matrix


DEFAULT_PERMISSIONS = {
    "owner": _matrix(default=True),
    "admin": _matrix(default=True),
    "user": _matrix({
        "leads": ["view", "create", "update"],
        "conversations": ["view", "reply"],
        "agents": ["view"],
    }),
}


def get_role_defaults(role):
    """Deep copy of the role's default map; unknown roles get the least-privileged defaults."""
    return copy.deepcopy(DEFAULT_PERMISSIONS.get(role, DEFAULT_PERMISSIONS[FALLBACK_ROLE]))


def get_permission_catalog():
    """
    Returns the global catalog entries, one per resource/action leaf.
    Format: [
        {"key": "leads.create", "name": "Criar leads", "description": "...",
         "category": "Leads", "subcategory": None, "default_value": True},
        ...
    ]
    default_value is what the least-privileged role gets.
    """
    catalog = []
    fallback = DEFAULT_PERMISSIONS[FALLBACK_ROLE]
    for resource, config in RESOURCES.items():
        for action in config["actions"]:
            catalog.append({
                "key": f"{resource}.{action}",
                "name": f"{ACTION_LABELS.get(action, action.capitalize())} {config['category'].lower()}",
                "description": config["description"],
                "category": config["category"],
                "subcategory": None,
                "default_value": fallback[resource][action],
            })
    return catalog


PERMISSION_CATALOG = get_permission_catalog()
