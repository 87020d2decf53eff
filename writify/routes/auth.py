"""Authentication routes (Google OAuth + session cookie)."""
import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from writify.core.config import settings
from writify.core.security import create_access_token, get_optional_user
from writify.db.sessions import get_db
from writify.models.user import User, ROLE_STUDENT, WRITER_INACTIVE
from writify.routes._common import UserResponse, user_response
from writify.services.google_oauth import google_oauth
from writify.utils.request_sanitizer import is_university_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

OAUTH_STATE_COOKIE = "writify_oauth_state"


class AuthStatusResponse(BaseModel):
    is_authenticated: bool
    user: Optional[UserResponse] = None


def _frontend(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


def get_or_create_user(db: Session, identity: dict) -> User:
    """Find the user for a Google identity, creating it on first login."""
    user = db.query(User).filter(User.google_id == identity["google_id"]).first()
    if user:
        return user

    user = User(
        google_id=identity["google_id"],
        email=identity["email"],
        name=identity["name"],
        profile_picture=identity.get("picture"),
        role=ROLE_STUDENT,
        writer_status=WRITER_INACTIVE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s for %s", user.id, user.email)
    return user


@router.get("/google")
def google_login():
    """Redirect the browser to Google's consent screen."""
    if not google_oauth.configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth is not configured"
        )

    state = secrets.token_urlsafe(16)
    response = RedirectResponse(url=google_oauth.get_authorization_url(state=state), status_code=302)
    response.set_cookie(OAUTH_STATE_COOKIE, state, max_age=600, httponly=True, samesite="lax",
                        secure=settings.COOKIE_SECURE)
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Finish the Google login.

    - Only institutional email addresses may sign in
    - Creates the user on first login
    - Sets the session cookie and redirects to the dashboard
    """
    if not code or not state or state != request.cookies.get(OAUTH_STATE_COOKIE):
        logger.warning("OAuth callback with missing code or mismatched state")
        return RedirectResponse(url=_frontend("/login?error=server"), status_code=302)

    # Third-party I/O happens before any database work
    identity = await google_oauth.authenticate(code)
    if not identity or not identity.get("google_id"):
        return RedirectResponse(url=_frontend("/login?error=server"), status_code=302)

    if not is_university_email(identity.get("email"), settings.UNIVERSITY_EMAIL_DOMAIN):
        logger.info("Rejected login for %s: not a university email", identity.get("email"))
        return RedirectResponse(url=_frontend("/login?error=unauthorized"), status_code=302)

    try:
        user = get_or_create_user(db, identity)
    except Exception:
        db.rollback()
        logger.exception("Could not load or create user for %s", identity.get("email"))
        return RedirectResponse(url=_frontend("/login?error=server"), status_code=302)

    token = create_access_token(data={"sub": str(user.id)})
    response = RedirectResponse(url=_frontend("/dashboard"), status_code=302)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="none" if settings.COOKIE_SECURE else "lax",
        secure=settings.COOKIE_SECURE,
    )
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


@router.get("/logout")
def logout():
    response = RedirectResponse(url=_frontend("/login"), status_code=302)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get("/status", response_model=AuthStatusResponse)
def auth_status(current_user: Optional[User] = Depends(get_optional_user)):
    if current_user is None:
        return AuthStatusResponse(is_authenticated=False)
    return AuthStatusResponse(is_authenticated=True, user=user_response(current_user))
