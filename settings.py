import os
from dotenv import load_dotenv

# Values in a local .env never override variables already set in the environment
load_dotenv()

# Database
DATABASE_URL = os.environ.get("DATABASE_URL")

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is not set. Please check your .env file.")

DATABASE_ECHO = os.environ.get("DATABASE_ECHO", "false").lower() in ("1", "true", "yes")

# Rooms 1..TOTAL_ROOMS are created on startup when missing
TOTAL_ROOMS = int(os.environ.get("TOTAL_ROOMS", "10"))

# Seconds between automatic overdue sweeps. 0 turns the sweeper off.
OVERDUE_SWEEP_INTERVAL_SECONDS = int(os.environ.get("OVERDUE_SWEEP_INTERVAL_SECONDS", "3600"))

# HTTP surface
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
