# Supabase tables: roles, permissions, role_permissions, user_roles, modules, profiles
# This file documents the expected database schema
# Decisions only read these tables; role administration writes roles,
# role_permissions and user_roles through the service-role client

"""
Expected Supabase table structure:

roles:
- id: uuid (primary key)
- name: text (not null) - machine name, e.g. "super_admin", "user_admin", "user"
- display_name: text (not null)
- description: text (nullable)
- module_id: uuid (nullable) - NULL for global roles
- is_system: boolean (default: false) - system roles can't be modified or deleted
- priority: int (default: 0) - higher = more privileged
- created_at: timestamp (default: now())
- unique constraint on (name, module_id)

permissions:
- id: uuid (primary key)
- module_id: uuid (nullable)
- resource: text (not null) - e.g. "users", "roles"
- action: text (not null) - e.g. "read", "write", "delete"
- description: text (nullable)
- conditions: jsonb (default: {})
- created_at: timestamp (default: now())
- unique constraint on (module_id, resource, action)

role_permissions:
- role_id: uuid (foreign key to roles.id, on delete cascade)
- permission_id: uuid (foreign key to permissions.id, on delete cascade)
- granted_at: timestamp (default: now())
- primary key (role_id, permission_id)

user_roles:
- user_id: uuid (foreign key to auth.users.id, on delete cascade)
- role_id: uuid (foreign key to roles.id, on delete cascade)
- assigned_by: uuid (nullable, foreign key to auth.users.id)
- assigned_at: timestamp (default: now())
- expires_at: timestamp (nullable)
- metadata: jsonb (default: {})
- primary key (user_id, role_id)

modules:
- id: uuid (primary key)
- name: text (unique, not null)
- display_name: text (not null)
- description, icon, base_route: text (nullable)
- is_active: boolean (default: true)
- required_employee: boolean (default: false)

profiles:
- id: uuid (primary key, references auth.users.id)
- first_name, last_name, display_name, email, phone, avatar_url: text
- employee_id: text (unique, nullable)
- status: text ('active' | 'inactive' | 'suspended')
- created_at, updated_at: timestamp

Join shapes requested through PostgREST:

user_roles -> role:roles(...)                    one role object per row
user_roles -> role:roles(role_permissions(permission:permissions(action, resource)))
role_permissions -> permission:permissions(...)  one permission object per row
user_roles -> user:profiles(...)                 one profile object per row

Database function used for module access:

can_access_module(p_module_name text, p_user_id uuid) -> boolean
"""

SUPER_ADMIN_ROLE = "super_admin"

USER_ROLES_TABLE = "user_roles"
ROLES_TABLE = "roles"
PERMISSIONS_TABLE = "permissions"
ROLE_PERMISSIONS_TABLE = "role_permissions"
MODULES_TABLE = "modules"
PROFILES_TABLE = "profiles"

CAN_ACCESS_MODULE_RPC = "can_access_module"

# Columns selected from the nested role for each lookup
SUPER_ADMIN_ROLE_COLUMNS = "id, name, display_name"
USER_ROLE_COLUMNS = "id, name, display_name, description"
PERMISSION_JOIN = "role:roles(role_permissions(permission:permissions(action, resource)))"
