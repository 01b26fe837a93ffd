from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import User, AuthContext
from trip_booking.auth.service import UserService
from trip_booking.auth.permissions import PermissionFlag
from trip_booking.auth.dependencies import get_auth_context, require_permissions, require_same_user_or_admin

router = APIRouter()

@router.get("/", response_model=List[User])
def list_users(
    limit: int = Query(25, ge=1, le=100, description="Users per page"),
    page: int = Query(0, ge=0, description="Zero-based page number"),
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """List users (admin only)"""
    return UserService.list_users(db, limit=limit, page=page)

@router.get("/{user_id}", response_model=User)
def get_user(
    user_id: int,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    """Get a user; only the user themself or an admin"""
    require_same_user_or_admin(auth, user_id)
    return UserService.get_user_or_404(db, user_id)

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    """Delete a user with their tickets and reviews"""
    require_same_user_or_admin(auth, user_id)
    UserService.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.patch("/{user_id}/permission-flags/{permission_flags}", response_model=User)
def set_permission_flags(
    user_id: int,
    permission_flags: int,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Change a user's permission flags (admin only)"""
    return UserService.set_permission_flags(db, user_id, permission_flags)
