from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.user import UserRegister, UserLogin, UserOut
from app.schemas.tokens import Token
from app.services.users import UserDirectory
from app.utils.auth import get_current_user
from app.utils.security import create_access_token

router = APIRouter()

def _token_for(user: User) -> dict:
    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
    }

@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(user: UserRegister, db: Session = Depends(get_db)):
    new_user = UserDirectory(db).register(user)
    return _token_for(new_user)

@router.post("/login", response_model=Token)
def login(user: UserLogin, db: Session = Depends(get_db)):
    db_user = UserDirectory(db).authenticate(user.email, user.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not db_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account has been deactivated. Please contact administrator."
        )
    return _token_for(db_user)

@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    """Get current user information"""
    return current_user
