# Structured Logging Module - Procedural Approach
from datetime import datetime
from typing import Any, Dict, Optional

from smartchair import config

# ANSI Color Codes for Terminal
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    PURPLE = '\033[95m'
    CYAN = '\033[96m'
    WHITE = '\033[97m'
    RESET = '\033[0m'
    BOLD = '\033[1m'

# Step Prefixes with Emojis
STEP_PREFIXES = {
    "CHAIR": "🪑",
    "POSE": "🧍",
    "DB": "💾",
    "WS": "📡",
    "API": "🌐",
    "SYSTEM": "🔧",
    "ERROR": "❌",
    "SUCCESS": "✅",
    "WARNING": "⚠️"
}

# Steps printed only when LOG_LEVEL is DEBUG or INFO
INFO_STEPS = {"CHAIR", "POSE", "DB", "WS", "API", "SYSTEM", "SUCCESS"}

# Next Step Suggestions
NEXT_STEPS = {
    "CHAIR:NEW": "Chair will show up in GET /api/chairids once a record is saved",
    "DB:RECORD": "Record visible via GET /api/history/{chairId}",
    "WS:CLIENT": "Client will receive chairData / postureUpdate events",
    "SUCCESS:SERVER": "POST /chair or /posenet to start ingesting observations",
}


def get_timestamp() -> str:
    """Get formatted timestamp"""
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def is_enabled(step: str) -> bool:
    level = config.LOG_LEVEL.upper()
    if level in ("DEBUG", "INFO"):
        return True
    if level == "WARNING":
        return step not in INFO_STEPS
    return step == "ERROR"


def log_step(step: str, action: str, data: Optional[Dict[str, Any]] = None, color: str = Colors.CYAN):
    """
    Log a step with structured format
    
    Args:
        step: Step category (CHAIR, POSE, DB, WS, API, etc.)
        action: Description of the action
        data: Optional dictionary of data to display
        color: ANSI color code
    """
    if not is_enabled(step):
        return

    prefix = STEP_PREFIXES.get(step, "🔹")
    timestamp = get_timestamp()
    
    print(f"{color}{Colors.BOLD}[{timestamp}] {prefix} [{step}]{Colors.RESET} {action}")
    
    if data:
        for key, value in data.items():
            # Truncate long values
            if isinstance(value, str) and len(value) > 100:
                value = value[:97] + "..."
            print(f"   {Colors.WHITE}├─ {key}: {value}{Colors.RESET}")
    
    # Suggest next step
    next_step_key = f"{step}:{action.split()[0].upper()}"
    if next_step_key in NEXT_STEPS:
        print(f"   {Colors.YELLOW}└─ >>> Next: {NEXT_STEPS[next_step_key]}{Colors.RESET}")
    print()  # Blank line for readability


def log_chair(action: str, data: Optional[Dict[str, Any]] = None):
    """Log pressure sensor events"""
    log_step("CHAIR", action, data, Colors.BLUE)


def log_pose(action: str, data: Optional[Dict[str, Any]] = None):
    """Log PoseNet keypoint events"""
    log_step("POSE", action, data, Colors.PURPLE)


def log_db(action: str, data: Optional[Dict[str, Any]] = None):
    """Log database events"""
    log_step("DB", action, data, Colors.WHITE)


def log_ws(action: str, data: Optional[Dict[str, Any]] = None):
    """Log WebSocket events"""
    log_step("WS", action, data, Colors.GREEN)


def log_api(action: str, data: Optional[Dict[str, Any]] = None):
    """Log API events"""
    log_step("API", action, data, Colors.CYAN)


def log_error(action: str, error: Exception, data: Optional[Dict[str, Any]] = None):
    """Log errors with type and message"""
    error_data = dict(data or {})
    error_data["Error"] = str(error)
    error_data["Type"] = type(error).__name__
    log_step("ERROR", action, error_data, Colors.RED)


def log_success(action: str, data: Optional[Dict[str, Any]] = None):
    """Log success events"""
    log_step("SUCCESS", action, data, Colors.GREEN)


def log_warning(action: str, data: Optional[Dict[str, Any]] = None):
    """Log warnings"""
    log_step("WARNING", action, data, Colors.YELLOW)


def log_lifecycle(phase: str, details: str = ""):
    """
    Log major lifecycle events with clear visual separation
    
    Args:
        phase: Phase name (e.g., "STARTUP", "SHUTDOWN")
        details: Optional details
    """
    separator = "=" * 80
    print(f"\n{Colors.BOLD}{Colors.CYAN}{separator}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}>>> {phase} {details}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{separator}{Colors.RESET}\n")
