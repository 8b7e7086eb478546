import firebase_admin
from firebase_admin import credentials, auth
from cortexbuild.core.config import settings
import logging

logger = logging.getLogger(__name__)


def init_firebase():
    """Initialize Firebase Admin SDK"""
    logger.info("init_firebase: Entry")

    try:
        if not firebase_admin._apps:
            cred = credentials.Certificate(settings.firebase_credentials_path)
            firebase_admin.initialize_app(cred, {
                'projectId': settings.firebase_project_id,
            })
            logger.info("init_firebase: Success")
        else:
            logger.info("init_firebase: Already initialized")
    except Exception as e:
        logger.error(f"init_firebase: Failure - {e}")
        raise


def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return the decoded claims.

    Role and company are custom claims set when the account is provisioned
    ('role', 'company_id').
    """
    logger.info("verify_firebase_token: Entry")

    try:
        decoded_token = auth.verify_id_token(token)
        logger.info(f"verify_firebase_token: Success - {decoded_token.get('uid')}")
        return decoded_token
    except Exception as e:
        logger.error(f"verify_firebase_token: Failure - {e}")
        raise


def claims_to_user(decoded_token: dict) -> dict:
    """Map decoded token claims to the authenticated user dict used by routes."""
    return {
        'uid': decoded_token.get('uid'),
        'email': decoded_token.get('email'),
        'role': decoded_token.get('role') or 'operative',
        'company_id': decoded_token.get('company_id') or '',
        'token': decoded_token,
    }
