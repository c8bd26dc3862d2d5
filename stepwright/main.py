import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stepwright.core.config import CORS_ORIGINS
from stepwright.core.errors import (
    InvalidStepInputError,
    MissingProjectPathError,
    NotFoundError,
    ScriptWriteError,
)
from stepwright.core.logging import configure_logging
from stepwright.db.init_db import init_db
from stepwright.api.projects import router as project_router
from stepwright.api.test_cases import router as test_case_router
from stepwright.api.steps import router as step_router
from stepwright.api.consolidation import router as consolidation_router
from stepwright.api.versions import router as version_router
from stepwright.api.fixtures import router as fixture_router
from stepwright.api.user import router as user_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Stepwright Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Ensure tables are created
init_db()

app.include_router(project_router)
app.include_router(test_case_router)
app.include_router(step_router)
app.include_router(consolidation_router)
app.include_router(version_router)
app.include_router(fixture_router)
app.include_router(user_router)

# --- Domain errors -> HTTP ---

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(InvalidStepInputError)
async def invalid_input_handler(request: Request, exc: InvalidStepInputError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(MissingProjectPathError)
async def missing_path_handler(request: Request, exc: MissingProjectPathError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(ScriptWriteError)
async def script_write_handler(request: Request, exc: ScriptWriteError):
    logger.error("Failed to update Playwright test file: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Failed to update Playwright test file", "path": exc.path, "reason": exc.reason}
    )

@app.get("/")
def root():
    return {"status": "Stepwright backend running"}
