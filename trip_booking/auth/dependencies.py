from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from trip_booking.config import settings
from trip_booking.database import get_db
from trip_booking.auth.utils import verify_token
from trip_booking.auth.service import UserService
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.permissions import PermissionFlag, has_permission
from trip_booking.exceptions import AuthenticationError, PermissionDeniedError

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login/form", auto_error=False)

def get_auth_context(token: str = Depends(oauth2_scheme)) -> AuthContext:
    """Decode the bearer token into the caller's identity"""
    if not token:
        raise AuthenticationError("Not authenticated")
    
    token_data = verify_token(token)
    return AuthContext(**token_data)

def get_current_user(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get current authenticated user"""
    user = UserService.get_user_by_id(db, user_id=auth.user_id)
    if user is None:
        raise AuthenticationError("Could not validate credentials")
    return user

def require_permissions(required: PermissionFlag):
    """Dependency factory checking the caller's permission flags"""
    
    def checker(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not has_permission(auth.permission_flags, required):
            raise PermissionDeniedError("you're not authorized to perform this operation")
        return auth
    
    return checker

def is_admin(auth: AuthContext) -> bool:
    return has_permission(auth.permission_flags, PermissionFlag.ADMIN)

def require_same_user_or_admin(auth: AuthContext, user_id: int) -> None:
    """Only the user themself or an admin may touch ``user_id``'s resources"""
    if auth.user_id != user_id and not is_admin(auth):
        raise PermissionDeniedError("you're not authorized to perform this operation")
