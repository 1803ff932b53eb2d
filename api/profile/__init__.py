"""Profile management endpoints."""

from fastapi import APIRouter, HTTPException, Security, UploadFile, File, status, Depends
from typing import Any
from pydantic import BaseModel

from auth import get_current_user, require_token, AuthUser, AuthError, AuthServiceError
from forms import FormValidationError
from profiles import ProfileManager, ProfileNotFoundError, InvalidAvatarError
from storage import StorageError

router = APIRouter(
    prefix="/profile",
    tags=["Profile"]
)

def get_profile_manager() -> ProfileManager:
    return ProfileManager()

class ProfileUpdate(BaseModel):
    """Model for profile updates."""
    username: Any = None
    whatsapp: Any = None

@router.get("/")
async def get_profile(
    user: AuthUser = Security(get_current_user),
    manager: ProfileManager = Depends(get_profile_manager)
):
    """Get the authenticated user's profile."""
    try:
        profile = await manager.get_profile(user.id)
        return {**profile, "email": user.email}
    except ProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.patch("/")
async def update_profile(
    updates: ProfileUpdate,
    user: AuthUser = Security(get_current_user),
    manager: ProfileManager = Depends(get_profile_manager)
):
    """Update username and WhatsApp number."""
    try:
        return await manager.update_profile(user.id, updates.model_dump())
    except FormValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except ProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    user: AuthUser = Security(get_current_user),
    token: str = Security(require_token),
    manager: ProfileManager = Depends(get_profile_manager)
):
    """Upload a new avatar image."""
    try:
        content = await file.read()
        avatar_url = await manager.upload_avatar(
            user.id,
            content,
            file.content_type,
            filename=file.filename,
            access_token=token
        )
        return {"avatar_url": avatar_url}
    except InvalidAvatarError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/reset-password")
async def reset_password(
    user: AuthUser = Security(get_current_user),
    manager: ProfileManager = Depends(get_profile_manager)
):
    """Send the password recovery email to the signed-in user."""
    try:
        await manager.reset_password(user.email)
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

# Export the router
__all__ = ['router', 'get_profile_manager']
