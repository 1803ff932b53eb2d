"""Authentication module backed by the hosted auth service.

This module provides:
1. Sign up, sign in, sign out and password reset against the hosted auth REST API
2. Local verification of the hosted session tokens (JWT)
3. Dependencies for protecting routes
"""

import logging
from typing import Optional, Dict, Any

import httpx
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel

from config import settings_conf
from database import get_pool
from forms import SignInForm, SignUpForm, validate_form

# Configure logging
logger = logging.getLogger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
AUTH_PATH = "/auth/v1"

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class InvalidCredentialsError(AuthError):
    """Raised when the hosted auth service rejects the credentials."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a session token has expired."""
    pass

class AuthServiceError(AuthError):
    """Raised when the hosted auth service cannot be reached or fails."""
    pass

class AuthUser(BaseModel):
    """Authenticated user extracted from a session token."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None

def api_headers(access_token: Optional[str] = None) -> Dict[str, str]:
    """Headers for calls to the hosted backend REST APIs.

    Args:
        access_token: Optional user session token; the anon key is used otherwise
    """
    anon_key = settings_conf['supabase_anon_key']
    return {
        'apikey': anon_key,
        'Authorization': f"Bearer {access_token or anon_key}",
    }

def _error_message(response: httpx.Response) -> str:
    """Extract the error message from a hosted auth error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    for key in ('msg', 'error_description', 'message', 'error'):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return f"HTTP {response.status_code}"

class AuthManager:
    """Manages hosted auth calls and session verification."""

    def __init__(self, pool=None, client: Optional[httpx.AsyncClient] = None):
        """Initialize auth manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            client: Optional HTTP client for the hosted auth API.
        """
        self.pool = pool
        self.client = client
        self.base_url = f"{settings_conf['supabase_url']}{AUTH_PATH}"

    async def ensure_pool(self):
        """Ensure database pool is available."""
        if not self.pool:
            self.pool = await get_pool()

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            self.client = httpx.AsyncClient(timeout=30)
        return self.client

    async def _post(
        self,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None
    ) -> httpx.Response:
        try:
            response = await self._get_client().post(
                f"{self.base_url}{path}",
                json=payload,
                params=params,
                headers=api_headers(access_token)
            )
        except httpx.HTTPError as e:
            logger.error(f"Auth service request {path} failed: {e}")
            raise AuthServiceError(f"Auth service unavailable: {e}")

        if response.status_code in (400, 401, 403, 422):
            raise InvalidCredentialsError(_error_message(response))
        if response.status_code >= 300:
            logger.error(f"Auth service error on {path}: {response.status_code}")
            raise AuthServiceError(_error_message(response))
        return response

    async def sign_up(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Register a new account.

        Args:
            data: email, password, username and whatsapp as submitted

        Returns:
            Dict containing the new user id, email and username

        Raises:
            FormValidationError: If a sign up rule is violated
            InvalidCredentialsError: If the auth service refuses the account
        """
        form = validate_form(SignUpForm, data)
        response = await self._post(
            '/signup',
            {
                'email': form.email,
                'password': form.password,
                'data': {'username': form.username, 'whatsapp': form.whatsapp}
            },
            params={'redirect_to': f"{settings_conf['site_url']}/"}
        )
        body = response.json()
        user = body.get('user') or body
        user_id = user.get('id')
        if not user_id:
            raise AuthServiceError("Auth service did not return a user")

        await self.ensure_profile(user_id, form.username, form.whatsapp)
        logger.info(f"Registered user {user_id}")
        return {
            'id': user_id,
            'email': form.email,
            'username': form.username
        }

    async def ensure_profile(self, user_id: str, username: str, whatsapp: str) -> None:
        """Create the profile row for a user if it does not exist yet."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await conn.execute(
                '''
                INSERT INTO profiles (id, username, whatsapp)
                VALUES ($1, $2, $3)
                ON CONFLICT (id) DO NOTHING
                ''',
                user_id,
                username,
                whatsapp
            )

    async def sign_in(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Sign in with email and password.

        Returns:
            Dict containing access_token, refresh_token, expires_in and user_id
        """
        form = validate_form(SignInForm, data)
        response = await self._post(
            '/token',
            {'email': form.email, 'password': form.password},
            params={'grant_type': 'password'}
        )
        body = response.json()
        return {
            'access_token': body['access_token'],
            'refresh_token': body.get('refresh_token'),
            'expires_in': body.get('expires_in'),
            'user_id': (body.get('user') or {}).get('id')
        }

    async def sign_out(self, access_token: str) -> None:
        """Revoke the hosted session behind a token."""
        await self._post('/logout', access_token=access_token)

    async def reset_password(self, email: str) -> None:
        """Send the hosted password recovery email."""
        if not email:
            raise AuthError("Account has no email address")
        await self._post(
            '/recover',
            {'email': email},
            params={'redirect_to': f"{settings_conf['site_url']}/reset-password"}
        )
        logger.info("Password recovery email requested")

    def verify_session(self, token: str) -> AuthUser:
        """Verify a session token issued by the hosted auth service.

        Args:
            token: The session token (JWT) to verify

        Returns:
            The authenticated user

        Raises:
            SessionExpiredError: If session has expired
            AuthError: For other verification errors
        """
        secret = settings_conf['supabase_jwt_secret']
        if not secret:
            raise AuthError("JWT secret is not configured")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                audience=settings_conf['jwt_audience']
            )
        except ExpiredSignatureError:
            raise SessionExpiredError("Session has expired")
        except JWTError as e:
            raise AuthError(f"Invalid token: {str(e)}")

        if not payload.get('sub'):
            raise AuthError("Token has no subject")
        return AuthUser(
            id=payload['sub'],
            email=payload.get('email'),
            role=payload.get('role')
        )

# Create global instance
manager = AuthManager()

# FastAPI security scheme
auth_scheme = HTTPBearer(
    auto_error=False,  # Missing tokens are answered with 401 below
    description="Hosted session token required"
)

async def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> str:
    """FastAPI dependency returning the raw bearer token, 401 when absent."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return credentials.credentials

async def get_current_user(token: str = Depends(require_token)) -> AuthUser:
    """FastAPI dependency for getting authenticated user.

    Args:
        token: Bearer token

    Returns:
        The authenticated user

    Raises:
        HTTPException: If authentication fails
    """
    try:
        return manager.verify_session(token)
    except SessionExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

# Export public interface
__all__ = [
    'manager',
    'AuthManager',
    'AuthUser',
    'auth_scheme',
    'require_token',
    'api_headers',
    'get_current_user',
    'AuthError',
    'InvalidCredentialsError',
    'SessionExpiredError',
    'AuthServiceError'
]
