from fastapi import Depends, HTTPException, status

from app.core.security_current import get_current_user
from app.models.user import User


def require_platform_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_platform_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient role for this action",
        )
    return user
