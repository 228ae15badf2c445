import jwt
from datetime import datetime, timedelta
from typing import Dict, Any
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from config.settings import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRATION_HOURS, SETUP_EDITOR_POSITIONS

security = HTTPBearer()

def create_jwt_token(user_data: Dict[str, Any]) -> str:
    """Create JWT token"""
    payload = {
        "user_id": user_data["user_id"],
        "email": user_data.get("email"),
        "full_name": user_data.get("full_name"),
        "position": user_data.get("position"),
        "store_id": user_data["store_id"],
        "exp": datetime.utcnow() + timedelta(hours=JWT_EXPIRATION_HOURS),
        "iat": datetime.utcnow()
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)

def verify_jwt_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """Verify JWT token and return payload"""
    try:
        payload = jwt.decode(credentials.credentials, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )

    if not payload.get("user_id") or not payload.get("store_id"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Store ID not found in user profile"
        )
    return payload

def can_edit_setup(current_user: Dict[str, Any], setup_owner_id: str) -> bool:
    """Creators can always edit their setup; Leaders and Directors can edit any setup in their store"""
    if str(current_user.get("user_id")) == str(setup_owner_id):
        return True
    return current_user.get("position") in SETUP_EDITOR_POSITIONS
