import os
from dotenv import load_dotenv

load_dotenv()

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./stepwright.db")

# --- Auth (tokens are issued by the identity service, we only verify them) ---
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# --- Script generation ---
DEFAULT_ACTION_TIMEOUT_MS = int(os.getenv("DEFAULT_ACTION_TIMEOUT_MS", "30000"))
SCRIPT_EXTENSION = os.getenv("SCRIPT_EXTENSION", "ts")
CODEGEN_MODEL = os.getenv("CODEGEN_MODEL", "gemini-2.0-flash")

# --- Versioning ---
VERSION_DEBOUNCE_SECONDS = float(os.getenv("VERSION_DEBOUNCE_SECONDS", "30"))

# --- Misc ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]
