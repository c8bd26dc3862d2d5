from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

class VersionResponse(BaseModel):
    id: int
    test_case_id: int
    version: str
    name: str
    description: Optional[str] = None
    script_source: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True

class StepVersionResponse(BaseModel):
    id: int
    order: int
    action: str
    data: Optional[str] = None
    expected: Optional[str] = None
    playwright_code: Optional[str] = None
    selector: Optional[str] = None
    disabled: bool
    fixture_id: Optional[int] = None

    class Config:
        from_attributes = True

class VersionDetail(BaseModel):
    version: VersionResponse
    steps: List[StepVersionResponse]

class RestoreRequest(BaseModel):
    version_id: int
