# app/routers/user.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.schemas.user import UserOut, UserUpdate
from app.services.users import UserDirectory
from app.utils.auth import get_current_principal
from app.utils.permissions import Principal

router = APIRouter()

def get_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)

@router.get("/", response_model=List[UserOut])
def get_all_users(
    directory: UserDirectory = Depends(get_directory),
    principal: Principal = Depends(get_current_principal)
):
    """Get all users - admin only"""
    return directory.list_users(principal)

@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    directory: UserDirectory = Depends(get_directory),
    principal: Principal = Depends(get_current_principal)
):
    """Get a specific user - admin, or the user themselves"""
    return directory.get_user(principal, user_id)

@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    user_update: UserUpdate,
    directory: UserDirectory = Depends(get_directory),
    principal: Principal = Depends(get_current_principal)
):
    """Update a user - admin only"""
    return directory.update_user(principal, user_id, user_update)

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    directory: UserDirectory = Depends(get_directory),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a user - admin only. Their tasks are left in place."""
    directory.delete_user(principal, user_id)
    return None
