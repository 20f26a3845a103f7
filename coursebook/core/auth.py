from dataclasses import dataclass
from functools import wraps
from typing import Optional, Dict, Any

import jwt
import requests
from flask import request, jsonify, g
from jwt import PyJWKClient

from coursebook.core.config import (
    ADMIN_RPC_TIMEOUT,
    DEV_BYPASS_AUTH,
    DEV_USER_ID,
    SUPABASE_ANON_KEY,
    SUPABASE_JWT_SECRET,
    SUPABASE_URL,
    USER_ROLES,
)
from coursebook.core.errors import (
    AuthenticationError,
    BadRequestError,
    ExternalServiceError,
    handle_exception,
)
from coursebook.core.logging import get_logger
from coursebook.models.database import get_db_connection, get_placeholder, use_postgres

logger = get_logger("auth")

_jwks_client = None

DEV_USER = {
    "sub": DEV_USER_ID,
    "email": "dev@localhost",
    "role": "authenticated",
}


def get_jwks_client():
    global _jwks_client
    if _jwks_client is None and SUPABASE_URL:
        _jwks_client = PyJWKClient(f"{SUPABASE_URL}/auth/v1/jwks")
    return _jwks_client


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity passed explicitly to the course services."""

    user_id: str
    email: Optional[str] = None
    is_admin: bool = False
    token: Optional[str] = None


class AuthService:
    def __init__(self):
        self.supabase_url = SUPABASE_URL
        self.anon_key = SUPABASE_ANON_KEY
        self.jwt_secret = SUPABASE_JWT_SECRET
        self.dev_bypass = DEV_BYPASS_AUTH

    def verify_token(self, token: str) -> Dict[str, Any]:
        if not token:
            raise AuthenticationError("No token provided")

        if self.dev_bypass:
            logger.info("Dev bypass enabled, skipping token verification")
            return dict(DEV_USER)

        try:
            if self.jwt_secret:
                return jwt.decode(
                    token,
                    self.jwt_secret,
                    algorithms=["HS256"],
                    audience="authenticated",
                    options={"verify_aud": False},
                )

            if not self.supabase_url or not self.anon_key:
                logger.warning("Supabase not configured, rejecting request")
                raise AuthenticationError("Authentication not configured")

            # Supabase asymmetric tokens are verified against the project JWKS
            signing_key = get_jwks_client().get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["ES256", "RS256"],
                audience="authenticated",
                options={"verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.error(f"JWT verification failed: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_token_from_header(self) -> Optional[str]:
        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            return None

        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None

        return parts[1]

    def is_admin(self, user_id: str, token: Optional[str] = None) -> bool:
        try:
            if self.supabase_url and self.anon_key and token:
                return self._is_admin_rpc(user_id, token)
            return get_user_role(user_id) == "admin"
        except Exception as e:
            logger.error(
                f"Error checking admin status: {e}", extra={"user_id": user_id}
            )
            return False

    def _is_admin_rpc(self, user_id: str, token: str) -> bool:
        response = requests.post(
            f"{self.supabase_url}/rest/v1/rpc/is_admin",
            json={"user_uuid": user_id},
            headers={
                "Content-Type": "application/json",
                "apikey": self.anon_key,
                "Authorization": f"Bearer {token}",
            },
            timeout=ADMIN_RPC_TIMEOUT,
        )
        if response.status_code != 200:
            raise ExternalServiceError(
                "Supabase", "is_admin RPC failed", {"status": response.status_code}
            )
        return response.json() is True

    def resolve_context(self) -> Optional[AuthContext]:
        if self.dev_bypass:
            return AuthContext(
                user_id=DEV_USER_ID,
                email=DEV_USER["email"],
                is_admin=self.is_admin(DEV_USER_ID),
            )

        token = self.get_token_from_header()
        if not token:
            return None

        try:
            payload = self.verify_token(token)
        except AuthenticationError as e:
            logger.warning(f"Ignoring unverifiable token: {e.message}")
            return None

        user_id = payload.get("sub") or payload.get("id")
        if not user_id:
            return None
        return AuthContext(
            user_id=user_id,
            email=payload.get("email"),
            is_admin=self.is_admin(user_id, token),
            token=token,
        )


auth_service = AuthService()


def get_user_role(user_id: str) -> Optional[str]:
    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        ph = get_placeholder()
        cursor.execute(f"SELECT role FROM profiles WHERE user_id = {ph}", (user_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return row["role"]
    finally:
        conn.close()


def set_user_role(user_id: str, role: str) -> None:
    if role not in USER_ROLES:
        raise BadRequestError(f"Unknown role: {role}", details={"allowed": sorted(USER_ROLES)})

    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        ph = get_placeholder()
        now = "NOW()" if use_postgres() else "CURRENT_TIMESTAMP"
        excluded = "EXCLUDED" if use_postgres() else "excluded"
        cursor.execute(
            f"""INSERT INTO profiles (user_id, role) VALUES ({ph}, {ph})
                ON CONFLICT (user_id) DO UPDATE SET
                    role = {excluded}.role,
                    updated_at = {now}""",
            (user_id, role),
        )
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Role for {user_id} set to {role}", extra={"user_id": user_id})


def _unauthorized(message: str):
    error_dict, status_code = handle_exception(AuthenticationError(message))
    return jsonify(error_dict), status_code


def require_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if not auth_service.dev_bypass and not auth_service.get_token_from_header():
            return _unauthorized("Authorization token required")

        g.auth = auth_service.resolve_context()
        if g.auth is None:
            return _unauthorized("Invalid or expired token")

        return f(*args, **kwargs)

    return decorated


def optional_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        g.auth = auth_service.resolve_context()
        return f(*args, **kwargs)

    return decorated
