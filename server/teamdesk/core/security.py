import logging
from typing import Optional
from jose import JWTError, jwt
from teamdesk.core.config import settings

logger = logging.getLogger(__name__)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token issued by the auth service."""
    if not token or not isinstance(token, str) or not token.strip():
        return None

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError as e:
        logger.debug(f"JWT decode error: {str(e)}")
        return None
    except Exception as e:
        # Catch any other unexpected errors (like base64 decoding errors)
        logger.debug(f"Unexpected token decode error: {str(e)}")
        return None
