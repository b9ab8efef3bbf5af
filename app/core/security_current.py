from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.security import TokenValidationError, decode_token
from app.models.seller import MarketplaceSeller
from app.models.user import User

# Tokens are minted by the identity service; this URL only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    try:
        payload = decode_token(token, expected_type="access")
    except TokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user_id = payload.get("sub")
    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")
    return user


def get_current_seller(
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> MarketplaceSeller:
    seller = db.execute(
        select(MarketplaceSeller).where(MarketplaceSeller.owner_user_id == user.id)
    ).scalar_one_or_none()
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")
    if not seller.is_active:
        raise HTTPException(status_code=403, detail="Seller account is inactive")
    return seller
