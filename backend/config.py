import os

from dotenv import load_dotenv

load_dotenv()

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")

# Model used for timeline suggestions
PLANNER_MODEL = os.getenv("PLANNER_MODEL", "claude-sonnet-4-5")
PLANNER_MAX_TOKENS = int(os.getenv("PLANNER_MAX_TOKENS", "512"))

DATABASE_PATH = os.getenv("PLANNER_DATABASE_PATH", "planner.db")

# Comma separated list of allowed frontend origins
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("PLANNER_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("PLANNER_LOG_LEVEL", "INFO").upper()


def api_key_configured() -> bool:
    """The .env template ships a placeholder key; treat it as missing."""
    return bool(ANTHROPIC_API_KEY) and ANTHROPIC_API_KEY != "your-api-key-here"
