from .router import router
from .permissions import PermissionFlag, ALL_PERMISSIONS, has_permission

__all__ = ["router", "PermissionFlag", "ALL_PERMISSIONS", "has_permission"]
