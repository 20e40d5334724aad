"""JWT Token Validation for the auth provider's HS256 access tokens"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.enums import UserRole
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """Validates bearer tokens and maps their claims to an ActorContext"""
    
    def __init__(
        self,
        secret: Optional[str] = None,
        audience: Optional[str] = None,
        verify: Optional[bool] = None
    ):
        self.secret = secret if secret is not None else settings.auth_jwt_secret
        self.audience = audience if audience is not None else settings.auth_jwt_audience
        # Development decodes without signature verification unless told otherwise
        self.verify = verify if verify is not None else not settings.is_development
    
    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a JWT and return its claims
        
        Args:
            token: Bearer token (with or without 'Bearer ' prefix)
        
        Raises:
            AuthenticationError: If token is missing, expired or invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")
        
        if token.startswith("Bearer "):
            token = token[7:]
        
        try:
            if not self.verify:
                claims = jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "verify_aud": False,
                    }
                )
                logger.debug(f"Dev mode - token subject: {claims.get('sub')}")
                return claims
            
            if not self.secret:
                raise AuthenticationError("Token verification is not configured")
            
            return jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"verify_exp": True, "verify_aud": bool(self.audience)}
            )
        
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")
    
    def get_actor_context(self, token: str) -> ActorContext:
        """
        Build the actor from validated claims
        
        Tenant and role live in app_metadata; a role outside UserRole is
        rejected here rather than deeper in the engine.
        """
        claims = self.validate_token(token)
        
        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")
        
        app_metadata = claims.get("app_metadata") or {}
        raw_role = app_metadata.get("role") or claims.get("role")
        try:
            role = UserRole(str(raw_role).upper())
        except ValueError:
            logger.warning(f"Token carries unknown role: {raw_role}", extra={"user_id": user_id})
            raise AuthenticationError(
                "Token carries an invalid role",
                details={"role": raw_role}
            )
        
        email = claims.get("email") or None
        return ActorContext(
            user_id=user_id,
            email=email,
            display_name=claims.get("name") or email or user_id,
            role=role,
            tenant_id=app_metadata.get("tenant_id") or settings.default_tenant_id
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """Get current user from authorization header"""
    if not authorization:
        raise AuthenticationError("Authorization header is missing")
    
    return get_jwt_validator().get_actor_context(authorization)
