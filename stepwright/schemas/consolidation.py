from pydantic import BaseModel
from typing import Optional

class ConsolidateRequest(BaseModel):
    preserve_imports: bool = True

class ConsolidateResponse(BaseModel):
    success: bool = True
    playwright_script: str
    file_path: Optional[str] = None
    no_active_steps: bool = False
    message: Optional[str] = None

class LiveScriptResponse(BaseModel):
    success: bool = True
    playwright_script: str
    file_path: str
    message: str = "Playwright test file updated successfully"
