"""Profiles module for user details shown to trading partners.

This module provides functionality for:
- Reading and editing username and WhatsApp number
- Uploading an avatar to the hosted storage bucket
- Requesting the password recovery email
"""

import logging
import mimetypes
import os
from typing import Any, Dict, Optional, Union
from uuid import UUID

from auth import AuthManager, manager as auth_manager
from database import get_pool
from forms import ProfileForm, validate_form
from storage import StorageClient

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('username', 'whatsapp')

class ProfileError(Exception):
    """Base exception for profile operations."""
    pass

class ProfileNotFoundError(ProfileError):
    """Raised when a user has no profile."""
    pass

class InvalidAvatarError(ProfileError):
    """Raised when an uploaded avatar is not an image."""
    pass

def avatar_path(user_id: Union[str, UUID], content_type: str, filename: Optional[str] = None) -> str:
    """Storage path of a user's avatar, ``<user id>/avatar.<ext>``.

    The extension comes from the uploaded file name, or the content type when
    the name has none.
    """
    ext = os.path.splitext(filename or '')[1].lstrip('.').lower()
    if not ext:
        guessed = mimetypes.guess_extension(content_type) or ''
        ext = guessed.lstrip('.') or content_type.split('/')[-1]
    if ext == 'jpe':
        ext = 'jpg'
    return f"{user_id}/avatar.{ext}"

class ProfileManager:
    """Manager class for profile operations."""

    def __init__(
        self,
        pool=None,
        storage: Optional[StorageClient] = None,
        auth: Optional[AuthManager] = None
    ):
        """Initialize the profile manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            storage: Optional storage client for avatars.
            auth: Optional auth manager for password recovery.
        """
        self.pool = pool
        self.storage = storage or StorageClient()
        self.auth = auth or auth_manager

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_profile(self, user_id: Union[str, UUID]) -> Dict[str, Any]:
        """Get a user's profile.

        Raises:
            ProfileNotFoundError: If the user has no profile
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT id, username, whatsapp, avatar_url FROM profiles WHERE id = $1',
                user_id
            )
        if not row:
            raise ProfileNotFoundError(f"Profile {user_id} not found")
        return dict(row)

    async def update_profile(self, user_id: Union[str, UUID], data: Dict[str, Any]) -> Dict[str, Any]:
        """Update username and/or WhatsApp number.

        Fields left out of data are unchanged.

        Raises:
            FormValidationError: If a field is invalid
            ProfileNotFoundError: If the user has no profile
        """
        form = validate_form(ProfileForm, data)
        updates = {
            field: getattr(form, field)
            for field in PROFILE_FIELDS
            if getattr(form, field) is not None
        }
        if not updates:
            return await self.get_profile(user_id)

        set_clause = ', '.join(
            f"{field} = ${i}" for i, field in enumerate(updates, start=2)
        )

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'''
                UPDATE profiles
                SET {set_clause}
                WHERE id = $1
                RETURNING id, username, whatsapp, avatar_url
                ''',
                user_id,
                *updates.values()
            )
        if not row:
            raise ProfileNotFoundError(f"Profile {user_id} not found")

        logger.info(f"Updated profile {user_id}: {', '.join(updates)}")
        return dict(row)

    async def upload_avatar(
        self,
        user_id: Union[str, UUID],
        content: bytes,
        content_type: str,
        filename: Optional[str] = None,
        access_token: Optional[str] = None
    ) -> str:
        """Store a new avatar and save its public URL in the profile.

        Returns:
            The avatar's public URL

        Raises:
            InvalidAvatarError: If the file is not an image
            StorageError: If the upload fails
        """
        if not content_type or not content_type.startswith('image/'):
            raise InvalidAvatarError("Avatar must be an image")
        if not content:
            raise InvalidAvatarError("Avatar file is empty")

        path = avatar_path(user_id, content_type, filename)
        await self.storage.upload(path, content, content_type, access_token=access_token)
        avatar_url = self.storage.get_public_url(path)

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await conn.execute(
                'UPDATE profiles SET avatar_url = $2 WHERE id = $1',
                user_id,
                avatar_url
            )

        logger.info(f"Updated avatar of {user_id}")
        return avatar_url

    async def reset_password(self, email: Optional[str]) -> None:
        """Send the password recovery email for the signed-in user."""
        await self.auth.reset_password(email)

__all__ = [
    'ProfileManager',
    'ProfileError',
    'ProfileNotFoundError',
    'InvalidAvatarError',
    'avatar_path'
]
