from enum import IntFlag


class PermissionFlag(IntFlag):
    """Role bits carried in ``User.permission_flags`` and the JWT"""
    USER = 1
    TRIP_GUIDE = 2
    ADMIN = 4


ALL_PERMISSIONS = PermissionFlag.USER | PermissionFlag.TRIP_GUIDE | PermissionFlag.ADMIN


def has_permission(user_flags: int, required: int) -> bool:
    """A requirement passes when any required bit is set on the user"""
    return bool(int(required) & int(user_flags))
