from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from cortexbuild.core.firebase import verify_firebase_token, claims_to_user
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """
    Dependency to get current authenticated user from Firebase token.
    Returns dict with uid, email, role, company_id and the raw token claims.
    """
    logger.info("get_current_user: Entry")

    try:
        decoded_token = verify_firebase_token(credentials.credentials)
        user = claims_to_user(decoded_token)

        if not user['uid']:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials"
            )

        logger.info(f"get_current_user: Success - {user['uid']}, role: {user['role']}")
        return user
    except Exception as e:
        logger.error(f"get_current_user: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
