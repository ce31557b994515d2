"""Auth service: credential check and bearer token issuance."""

from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy.orm import Session

from landrecords.core.exceptions import UnauthorizedError
from landrecords.core.security import verify_password, create_access_token
from landrecords.models.user import User


class AuthService:
    """Handles authentication."""

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a JWT access token.

        Raises:
            UnauthorizedError: If credentials are invalid or the account is
                deactivated. The message never says which.
        """
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.hashed_password):
            raise UnauthorizedError("Invalid email or password")
        if not user.is_active:
            raise UnauthorizedError("Invalid email or password")

        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.name if user.role else None,
        }
        access_token = create_access_token(token_data)

        user.last_login_at = datetime.now(timezone.utc).replace(tzinfo=None)
        db.commit()

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": user,
        }


auth_service = AuthService()
