"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # repository root
        pathlib.Path.cwd() / ".env",  # .env in current directory
        pathlib.Path.cwd().parent / ".env",  # .env in parent directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


# Configuration constants with defaults
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql://localhost/dental_booking_dev"
    )

DATABASE_URL = get_database_url()
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Booking backend consumed by the async gateway client
BOOKING_API_BASE_URL = os.getenv("BOOKING_API_BASE_URL", API_BASE_URL)
BOOKING_API_TIMEOUT_SECONDS = float(os.getenv("BOOKING_API_TIMEOUT_SECONDS", "10"))

# Scheduling
CLINIC_UTC_OFFSET_MINUTES = int(os.getenv("CLINIC_UTC_OFFSET_MINUTES", "330"))
DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "15"))
SLOT_BOUNDARY_POLICY = os.getenv("SLOT_BOUNDARY_POLICY", "start_before_end")
AVAILABILITY_REFETCH_DEBOUNCE_MS = int(os.getenv("AVAILABILITY_REFETCH_DEBOUNCE_MS", "300"))
