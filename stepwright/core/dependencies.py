from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from stepwright.core.config import SECRET_KEY, ALGORITHM
from stepwright.db.deps import get_db
from stepwright.models.user import User
from stepwright.models.project import Project
from stepwright.services.code_generator import CodeGenerator
from stepwright.services.script_writer import ScriptWriter

# Tokens are issued by the identity service; this app only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_email = payload.get("sub")
        if user_email is None:
            raise HTTPException(status_code=401, detail="Invalid token")
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user = db.query(User).filter(User.email == user_email).first()

    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user

def get_owned_project(project_id: int, db: Session, current_user: User) -> Project:
    project = db.query(Project).filter(
        Project.id == project_id,
        Project.user_id == current_user.id
    ).first()

    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    return project

def get_code_generator(current_user: User = Depends(get_current_user)) -> CodeGenerator:
    # Per-user provider keys; empty ones fall back to the environment
    user_keys = {
        "openai": current_user.openai_key,
        "anthropic": current_user.anthropic_key,
        "gemini": current_user.gemini_key
    }
    return CodeGenerator(api_keys={k: v for k, v in user_keys.items() if v})

def get_script_writer() -> ScriptWriter:
    return ScriptWriter()
