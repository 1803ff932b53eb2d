"""Notifications API endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, Security

from auth import get_current_user, AuthUser
from notifications import NotificationManager

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"]
)

def get_notification_manager() -> NotificationManager:
    return NotificationManager()

@router.get("/")
async def get_notifications(
    user: AuthUser = Security(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Get pending purchases to approve and recently approved purchases."""
    try:
        notifications = await manager.get_notifications(user.id)
        return {
            "notifications": notifications,
            "total_count": len(notifications)
        }
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

# Export the router
__all__ = ['router', 'get_notification_manager']
