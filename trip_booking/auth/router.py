from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import UserCreate, User, UserUpdate, LoginRequest, AuthResponse
from trip_booking.auth.service import UserService
from trip_booking.auth.utils import create_access_token
from trip_booking.auth.dependencies import get_current_user
from trip_booking.exceptions import AuthenticationError

router = APIRouter()

def _issue_token(user) -> AuthResponse:
    access_token = create_access_token(
        data={"sub": str(user.id), "permission_flags": user.permission_flags}
    )
    return AuthResponse(
        access_token=access_token,
        token_type="bearer",
        user=user
    )

@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user"""
    return UserService.create_user(db=db, user=user)

@router.post("/login", response_model=AuthResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for an access token"""
    user = UserService.authenticate_user(db, login_data.email, login_data.password)
    if not user:
        raise AuthenticationError("Incorrect email or password")
    return _issue_token(user)

@router.post("/login/form", response_model=AuthResponse)
def login_form(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """OAuth2 password flow used by the interactive docs"""
    user = UserService.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise AuthenticationError("Incorrect email or password")
    return _issue_token(user)

@router.get("/me", response_model=User)
def read_users_me(current_user=Depends(get_current_user)):
    """Get current user profile"""
    return current_user

@router.put("/me", response_model=User)
def update_user_profile(
    user_update: UserUpdate,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update current user profile"""
    return UserService.update_user(db=db, user_id=current_user.id, user_update=user_update)
