from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from stepwright.db.deps import get_db
from stepwright.core.dependencies import get_current_user
from stepwright.models.user import User
from stepwright.schemas.user import UserResponse, UserKeysUpdate

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        has_openai=bool(current_user.openai_key),
        has_anthropic=bool(current_user.anthropic_key),
        has_gemini=bool(current_user.gemini_key)
    )

@router.put("/me/keys")
def update_api_keys(
    keys: UserKeysUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # Empty string clears a key, None leaves it alone
    if keys.openai_key is not None:
        current_user.openai_key = keys.openai_key or None
    if keys.anthropic_key is not None:
        current_user.anthropic_key = keys.anthropic_key or None
    if keys.gemini_key is not None:
        current_user.gemini_key = keys.gemini_key or None

    db.commit()
    db.refresh(current_user)
    return {"status": "success", "message": "API Keys updated"}
