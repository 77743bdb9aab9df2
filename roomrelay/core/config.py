# roomrelay/core/config.py
import os
from typing import List
from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Setup environment variables.
        - HISTORY_LIMIT how many messages each room keeps (oldest evicted first)
        - SEND_TIMEOUT_SECONDS upper bound on a single websocket write
        - OUTBOX_SIZE frames queued per connection before new ones are dropped
        - LEAVE_PREVIOUS_ROOM_ON_JOIN leave the current room before joining another
        - CORS_ORIGINS comma separated list of allowed origins
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "100"))
    SEND_TIMEOUT_SECONDS: float = float(os.getenv("SEND_TIMEOUT_SECONDS", "5.0"))
    OUTBOX_SIZE: int = int(os.getenv("OUTBOX_SIZE", "256"))
    LEAVE_PREVIOUS_ROOM_ON_JOIN: bool = _env_bool("LEAVE_PREVIOUS_ROOM_ON_JOIN", "true")

    CORS_ORIGINS: List[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]

settings = Settings()
