"""REST API module for the marketplace.

This module provides HTTP endpoints for:
- Sign up, sign in and session management
- Browsing units and their listings
- Creating and managing listings
- Cart, checkout and the WhatsApp hand-off to sellers
- Approving and rejecting sales, sales history
- Notifications, with real-time updates via WebSocket
- Profiles and avatars
- System health monitoring
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings_conf
from notifications.realtime import RealtimeListener

logger = logging.getLogger(__name__)

# Import and include all routers
from .auth import router as auth_router
from .units import router as units_router
from .listings import router as listings_router
from .cart import router as cart_router
from .sales import router as sales_router
from .notifications import router as notifications_router
from .profile import router as profile_router
from .websockets import router as websocket_router, handle_sale_change
from .system import router as system_router

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("Initializing API...")
    # Don't initialize DB here since it's handled in __main__.py
    listener = RealtimeListener(handle_sale_change)
    try:
        await listener.start()
    except Exception as e:
        logger.error(f"Realtime notifications disabled: {e}")
        listener = None

    yield

    # Shutdown
    logger.info("Shutting down API...")
    if listener:
        await listener.stop()

# Create FastAPI app
app = FastAPI(
    title="Heroclix Marketplace API",
    description="REST API for buying and selling Heroclix units",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings_conf['site_url']] if settings_conf['site_url'] else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {
        "name": "Heroclix Marketplace API",
        "version": "1.0.0",
        "status": "running"
    }

# Include all routers
app.include_router(auth_router)
app.include_router(units_router)
app.include_router(listings_router)
app.include_router(cart_router)
app.include_router(sales_router)
app.include_router(notifications_router)
app.include_router(profile_router)
app.include_router(websocket_router)
app.include_router(system_router)

__all__ = ['app']
