from pydantic import BaseModel
from typing import Optional

class ProjectCreate(BaseModel):
    name: str
    url: Optional[str] = None
    playwright_project_path: Optional[str] = None

class ProjectResponse(BaseModel):
    id: int
    name: str
    url: Optional[str] = None
    playwright_project_path: Optional[str] = None

    class Config:
        from_attributes = True
