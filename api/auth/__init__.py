"""Authentication API endpoints."""

from fastapi import APIRouter, HTTPException, status, Security
from typing import Any, Optional
from pydantic import BaseModel

from auth import (
    manager, get_current_user, require_token, AuthUser, AuthError,
    AuthServiceError, InvalidCredentialsError
)
from forms import FormValidationError

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

class SignUpRequest(BaseModel):
    """Request model for registering an account."""
    email: Any = ''
    password: Any = ''
    username: Any = ''
    whatsapp: Any = ''

class SignInRequest(BaseModel):
    """Request model for signing in."""
    email: Any = ''
    password: Any = ''

class ResetPasswordRequest(BaseModel):
    """Request model for the password recovery email."""
    email: Optional[str] = None

@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def sign_up(request: SignUpRequest):
    """Register a new account."""
    try:
        return await manager.sign_up(request.model_dump())
    except FormValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except AuthServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/signin")
async def sign_in(request: SignInRequest):
    """Sign in with email and password."""
    try:
        return await manager.sign_in(request.model_dump())
    except FormValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except AuthServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/signout")
async def sign_out(token: str = Security(require_token)):
    """Revoke the current session."""
    try:
        await manager.sign_out(token)
        return {"success": True}
    except AuthServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest):
    """Send the password recovery email."""
    try:
        await manager.reset_password(request.email)
        return {"success": True}
    except AuthServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("/verify")
async def verify_token(user: AuthUser = Security(get_current_user)):
    """Verify the current session token."""
    return {
        "valid": True,
        "user_id": user.id,
        "email": user.email
    }

# Export the router
__all__ = ['router']
