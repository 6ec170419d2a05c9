from pathlib import Path
from typing import Optional
from pydantic import BaseModel
import tomllib
import os
import random


class ServerCfg(BaseModel):
    http_url: str = "http://localhost:8080/query"
    ws_url: str = "ws://localhost:8080/query"
    timeout_seconds: float = 10


class TimingCfg(BaseModel):
    tick_seconds: float = 1
    notification_seconds: float = 3
    ending_soon_seconds: int = 10


class NetworkCfg(BaseModel):
    retry_backoff_seconds: float = 5


class Settings(BaseModel):
    server: ServerCfg = ServerCfg()
    timing: TimingCfg = TimingCfg()
    network: NetworkCfg = NetworkCfg()
    user_id: Optional[str] = None

    # ---- helpers -----------------------------------------------------
    def resolve_user_id(self) -> str:
        """Configured label, or a throwaway `User<n>` for this process."""
        if not self.user_id:
            self.user_id = f"User{random.randrange(1000)}"
        return self.user_id

    def headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }


def load_settings() -> Settings:
    cfg_path = Path(os.getenv("GAVEL_CONFIG", "gavel.toml"))
    raw = tomllib.loads(cfg_path.read_text()) if cfg_path.exists() else {}
    return Settings.model_validate(raw)
