from pydantic import BaseModel
from typing import Optional, Dict, Literal

class FixtureCreate(BaseModel):
    name: str
    type: Literal["setup", "teardown", "data"] = "setup"
    description: Optional[str] = None
    # {"exportName": ..., "path": ..., "filename": ...}; derived from the name when omitted
    content: Optional[Dict[str, str]] = None

class FixtureResponse(BaseModel):
    id: int
    project_id: int
    name: str
    type: str
    description: Optional[str] = None
    content: Optional[str] = None

    class Config:
        from_attributes = True

class FixtureCloneResponse(BaseModel):
    success: bool
    message: str
    fixture: FixtureResponse
