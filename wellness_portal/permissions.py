"""
Role-based permissions for the portal.

Each role maps to a flat list of permission strings. Staff inherit client
permissions, admins inherit staff permissions, and super-admin holds every
permission.
"""

from typing import Optional


class Permissions:
    # Appointment permissions
    VIEW_OWN_APPOINTMENTS = "view_own_appointments"
    VIEW_CENTRE_APPOINTMENTS = "view_centre_appointments"
    VIEW_ALL_APPOINTMENTS = "view_all_appointments"
    CREATE_APPOINTMENT = "create_appointment"
    EDIT_OWN_APPOINTMENT = "edit_own_appointment"
    EDIT_ANY_APPOINTMENT = "edit_any_appointment"
    DELETE_APPOINTMENT = "delete_appointment"

    # Staff permissions
    VIEW_STAFF = "view_staff"
    VIEW_STAFF_DETAILS = "view_staff_details"
    CREATE_STAFF = "create_staff"
    EDIT_STAFF = "edit_staff"
    DELETE_STAFF = "delete_staff"

    # Service permissions
    VIEW_SERVICES = "view_services"
    CREATE_SERVICE = "create_service"
    EDIT_SERVICE = "edit_service"
    DELETE_SERVICE = "delete_service"
    PERFORM_SERVICE = "perform_service"

    # Centre permissions
    VIEW_CENTRE = "view_centre"
    CREATE_CENTRE = "create_centre"
    EDIT_CENTRE = "edit_centre"
    DELETE_CENTRE = "delete_centre"

    # Client permissions
    VIEW_CLIENTS = "view_clients"
    VIEW_CLIENT_DETAILS = "view_client_details"
    CREATE_CLIENT = "create_client"
    EDIT_CLIENT = "edit_client"
    DELETE_CLIENT = "delete_client"
    IMPORT_CLIENTS = "import_clients"

    # Super admin permissions
    MANAGE_SYSTEM = "manage_system"
    PROMOTE_TO_SUPERADMIN = "promote_to_superadmin"

    # Role and permission management
    MANAGE_ROLES = "manage_roles"

    @classmethod
    def all(cls) -> list[str]:
        return [value for key, value in vars(cls).items() if key.isupper()]


CLIENT_PERMISSIONS = [
    Permissions.VIEW_OWN_APPOINTMENTS,
    Permissions.CREATE_APPOINTMENT,
    Permissions.EDIT_OWN_APPOINTMENT,
    Permissions.VIEW_SERVICES,
    Permissions.VIEW_CENTRE,
]

STAFF_PERMISSIONS = CLIENT_PERMISSIONS + [
    Permissions.VIEW_CENTRE_APPOINTMENTS,
    Permissions.PERFORM_SERVICE,
    Permissions.VIEW_CLIENTS,
    Permissions.VIEW_CLIENT_DETAILS,
    Permissions.VIEW_STAFF,
]

ADMIN_PERMISSIONS = STAFF_PERMISSIONS + [
    Permissions.VIEW_ALL_APPOINTMENTS,
    Permissions.VIEW_STAFF_DETAILS,
    Permissions.CREATE_STAFF,
    Permissions.EDIT_STAFF,
    Permissions.DELETE_STAFF,
    Permissions.CREATE_SERVICE,
    Permissions.EDIT_SERVICE,
    Permissions.DELETE_SERVICE,
    Permissions.EDIT_ANY_APPOINTMENT,
    Permissions.DELETE_APPOINTMENT,
    Permissions.CREATE_CENTRE,
    Permissions.EDIT_CENTRE,
    Permissions.CREATE_CLIENT,
    Permissions.EDIT_CLIENT,
    Permissions.DELETE_CLIENT,
    Permissions.IMPORT_CLIENTS,
    Permissions.MANAGE_ROLES,
]

ROLE_PERMISSIONS: dict[str, list[str]] = {
    "client": CLIENT_PERMISSIONS,
    "staff": STAFF_PERMISSIONS,
    "admin": ADMIN_PERMISSIONS,
    "super-admin": Permissions.all(),
}


def has_permission(role: Optional[str], permission: Optional[str]) -> bool:
    """Check if a role holds a specific permission"""
    if not role or not permission:
        return False

    normalized_role = role.lower()
    if normalized_role == "super-admin":
        return True

    return permission in ROLE_PERMISSIONS.get(normalized_role, [])


def has_resource_permission(
    role: Optional[str],
    permission: str,
    user_id: str,
    resource_owner_id: Optional[str] = None,
    user_centre_ids: Optional[list[str]] = None,
    resource_centre_id: Optional[str] = None,
) -> bool:
    """
    Check a permission against a specific resource.

    Owners always pass once the role holds the permission. A resource tied to a
    centre the user is not assigned to is only reachable by super-admin.
    """
    if not has_permission(role, permission):
        return False

    if resource_owner_id and user_id == resource_owner_id:
        return True

    if resource_centre_id and user_centre_ids is not None and resource_centre_id not in user_centre_ids:
        return role.lower() == "super-admin"

    return True


def get_permissions_for_role(role: Optional[str]) -> list[str]:
    if not role:
        return []
    return list(ROLE_PERMISSIONS.get(role.lower(), []))
