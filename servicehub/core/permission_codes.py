"""
System permission codes and role presets.

Codes follow ``{category}.{action}``. ``PERMISSION_DEFINITIONS`` is the
single source used for seeding the permissions table;
``ROLE_PERMISSIONS`` lists the grants a new user of each role starts with.
"""


class SystemPermission:
    """Permission code constants."""

    SYSTEM_ACCESS = "system.access"
    SYSTEM_ADMIN = "system.admin"
    SYSTEM_LOGS = "system.logs"
    DASHBOARD_VIEW = "dashboard.view"

    USERS_VIEW = "users.view"
    USERS_CREATE = "users.create"
    USERS_EDIT = "users.edit"
    USERS_DELETE = "users.delete"
    USERS_MANAGE = "users.manage"

    CUSTOMERS_VIEW = "customers.view"
    CUSTOMERS_CREATE = "customers.create"
    CUSTOMERS_EDIT = "customers.edit"
    CUSTOMERS_DELETE = "customers.delete"

    REQUESTS_VIEW = "requests.view"
    REQUESTS_CREATE = "requests.create"
    REQUESTS_EDIT = "requests.edit"
    REQUESTS_DELETE = "requests.delete"
    REQUESTS_ASSIGN = "requests.assign"
    REQUESTS_CONVERT = "requests.convert"
    REQUESTS_MANAGE = "requests.manage"

    APPOINTMENTS_VIEW = "appointments.view"
    APPOINTMENTS_CREATE = "appointments.create"
    APPOINTMENTS_EDIT = "appointments.edit"
    APPOINTMENTS_DELETE = "appointments.delete"

    NOTIFICATIONS_VIEW = "notifications.view"

    SETTINGS_VIEW = "settings.view"
    SETTINGS_EDIT = "settings.edit"

    PROFILE_VIEW = "profile.view"
    PROFILE_EDIT = "profile.edit"

    PERMISSIONS_VIEW = "permissions.view"
    PERMISSIONS_MANAGE = "permissions.manage"


# code → (category, display name, description)
PERMISSION_DEFINITIONS: dict[str, tuple[str, str, str]] = {
    SystemPermission.SYSTEM_ACCESS: ("System", "System Access", "Can access the system"),
    SystemPermission.SYSTEM_ADMIN: ("System", "System Administration", "Full administrative access"),
    SystemPermission.SYSTEM_LOGS: ("System", "View Logs", "Can view system logs"),
    SystemPermission.DASHBOARD_VIEW: ("System", "View Dashboard", "Can view dashboard statistics"),
    SystemPermission.USERS_VIEW: ("Users", "View Users", "Can view user list and details"),
    SystemPermission.USERS_CREATE: ("Users", "Create Users", "Can create new users"),
    SystemPermission.USERS_EDIT: ("Users", "Edit Users", "Can edit existing users"),
    SystemPermission.USERS_DELETE: ("Users", "Delete Users", "Can delete users"),
    SystemPermission.USERS_MANAGE: ("Users", "Manage Users", "Can manage user status and roles"),
    SystemPermission.CUSTOMERS_VIEW: ("Customers", "View Customers", "Can view customer list and details"),
    SystemPermission.CUSTOMERS_CREATE: ("Customers", "Create Customers", "Can create new customers"),
    SystemPermission.CUSTOMERS_EDIT: ("Customers", "Edit Customers", "Can edit existing customers"),
    SystemPermission.CUSTOMERS_DELETE: ("Customers", "Delete Customers", "Can delete customers"),
    SystemPermission.REQUESTS_VIEW: ("Requests", "View Requests", "Can view contact requests"),
    SystemPermission.REQUESTS_CREATE: ("Requests", "Create Requests", "Can create contact requests"),
    SystemPermission.REQUESTS_EDIT: ("Requests", "Edit Requests", "Can edit contact requests"),
    SystemPermission.REQUESTS_DELETE: ("Requests", "Delete Requests", "Can delete contact requests"),
    SystemPermission.REQUESTS_ASSIGN: ("Requests", "Assign Requests", "Can assign requests to users"),
    SystemPermission.REQUESTS_CONVERT: ("Requests", "Convert Requests", "Can convert requests to customers"),
    SystemPermission.REQUESTS_MANAGE: ("Requests", "Manage Requests", "Can run request workflows"),
    SystemPermission.APPOINTMENTS_VIEW: ("Appointments", "View Appointments", "Can view appointments"),
    SystemPermission.APPOINTMENTS_CREATE: ("Appointments", "Create Appointments", "Can create appointments"),
    SystemPermission.APPOINTMENTS_EDIT: ("Appointments", "Edit Appointments", "Can edit appointments"),
    SystemPermission.APPOINTMENTS_DELETE: ("Appointments", "Delete Appointments", "Can delete appointments"),
    SystemPermission.NOTIFICATIONS_VIEW: ("Notifications", "View Notifications", "Can view notifications"),
    SystemPermission.SETTINGS_VIEW: ("Settings", "View Settings", "Can view system settings"),
    SystemPermission.SETTINGS_EDIT: ("Settings", "Edit Settings", "Can edit system settings"),
    SystemPermission.PROFILE_VIEW: ("Profile", "View Profile", "Can view own profile"),
    SystemPermission.PROFILE_EDIT: ("Profile", "Edit Profile", "Can edit own profile"),
    SystemPermission.PERMISSIONS_VIEW: ("Permissions", "View Permissions", "Can view permission assignments"),
    SystemPermission.PERMISSIONS_MANAGE: ("Permissions", "Manage Permissions", "Can change permission assignments"),
}

ALL_PERMISSIONS: frozenset[str] = frozenset(PERMISSION_DEFINITIONS)

_VIEW_ALL = {
    SystemPermission.SYSTEM_ACCESS,
    SystemPermission.DASHBOARD_VIEW,
    SystemPermission.CUSTOMERS_VIEW,
    SystemPermission.REQUESTS_VIEW,
    SystemPermission.APPOINTMENTS_VIEW,
    SystemPermission.NOTIFICATIONS_VIEW,
    SystemPermission.PROFILE_VIEW,
    SystemPermission.PROFILE_EDIT,
}

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": ALL_PERMISSIONS,
    "manager": frozenset(_VIEW_ALL | {
        SystemPermission.USERS_VIEW,
        SystemPermission.CUSTOMERS_CREATE,
        SystemPermission.CUSTOMERS_EDIT,
        SystemPermission.CUSTOMERS_DELETE,
        SystemPermission.REQUESTS_CREATE,
        SystemPermission.REQUESTS_EDIT,
        SystemPermission.REQUESTS_DELETE,
        SystemPermission.REQUESTS_ASSIGN,
        SystemPermission.REQUESTS_CONVERT,
        SystemPermission.REQUESTS_MANAGE,
        SystemPermission.APPOINTMENTS_CREATE,
        SystemPermission.APPOINTMENTS_EDIT,
        SystemPermission.APPOINTMENTS_DELETE,
        SystemPermission.SETTINGS_VIEW,
        SystemPermission.PERMISSIONS_VIEW,
    }),
    "employee": frozenset(_VIEW_ALL | {
        SystemPermission.CUSTOMERS_CREATE,
        SystemPermission.CUSTOMERS_EDIT,
        SystemPermission.REQUESTS_CREATE,
        SystemPermission.REQUESTS_EDIT,
        SystemPermission.APPOINTMENTS_CREATE,
        SystemPermission.APPOINTMENTS_EDIT,
    }),
    "user": frozenset({
        SystemPermission.SYSTEM_ACCESS,
        SystemPermission.PROFILE_VIEW,
        SystemPermission.PROFILE_EDIT,
    }),
}
