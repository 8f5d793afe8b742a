# Configuration Module - Procedural approach with module-level variables
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database Configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./smartchair.db")
USE_ASYNC_POOL = os.getenv("USE_ASYNC_POOL", "false").lower() == "true"  # asyncpg, PostgreSQL only

# Server Configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Chair Discovery
ACTIVE_WINDOW_SECONDS = int(os.getenv("ACTIVE_WINDOW_SECONDS", "3600"))  # 1 hour
DEFAULT_CHAIR_ID = "unknown"

# History Endpoint
HISTORY_DEFAULT_LIMIT = 100
HISTORY_MAX_LIMIT = 1000

# Posture Classification Thresholds
POSTURE_THRESHOLDS = {
    "pressure": {
        "min_total": 200,           # below this nobody is sitting
        "forward_lean_ratio": 1.5,  # front > back * ratio
        "imbalance_ratio": 0.3,     # |left - right| > total * ratio
    },
    "keypoints": {
        "min_score": 0.3,           # nose + shoulders
        "shoulder_tilt_ratio": 0.2,
        "ear_min_score": 0.5,
        "ear_tilt_ratio": 0.3,
    },
}

SENSOR_COUNT = 4

# Real-time Events
CHAIR_DATA_EVENT = "chairData"
POSTURE_UPDATE_EVENT = "postureUpdate"
WS_SEND_TIMEOUT_SECONDS = float(os.getenv("WS_SEND_TIMEOUT_SECONDS", "5"))
