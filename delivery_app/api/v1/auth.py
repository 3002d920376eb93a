from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from delivery_app.config.database import get_db
from delivery_app.core.auth.service import AuthService
from delivery_app.core.auth.schemas import UserLogin, TokenResponse, UserResponse
from delivery_app.shared.database.models import User
from delivery_app.core.auth.dependencies import get_current_user

router = APIRouter()

@router.post("/login-json", response_model=TokenResponse)
async def login_json(
    user_login: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Login con JSON para obtener token de acceso

    **Body:**
    ```json
        {
            "email": "user@example.com",
            "password": "password123"
        }
    ```
    """
    user = db.query(User).filter(User.email == user_login.email).first()

    if not user or not AuthService.verify_password(user_login.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email o contraseña incorrectos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuario inactivo"
        )

    access_token = AuthService.create_access_token(
        data={"user_id": user.id, "email": user.email, "rol": user.rol}
    )

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user)
    )

@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """Información del usuario autenticado"""
    return current_user
