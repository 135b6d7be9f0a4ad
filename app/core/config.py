from typing import List, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json
import secrets

class Settings(BaseSettings):
    # Remote spreadsheet
    SHEET_ID: str = "15qpPqAKBH-IwxVkzG1UC-Fc3rZLUUXIqPjEqp_MVin4"
    SHEET_NAME: str = "SBH Maintenance"
    MASTER_SHEET_NAME: str = "Master"
    SHEET_QUERY_URL: str = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"
    APP_SCRIPT_URL: str = "https://script.google.com/macros/s/AKfycbyRpoQQV8M3nNol5hl7ty81_3A06mbI8HxQNspk1Po4vcZ4CbidBVu8C_QeuA1zRiGn/exec"
    DRIVE_FOLDER_ID: str = "1vjR1S3rdtjCpUKyVEsWALATkzqOzO5qh"
    SHEET_READ_TIMEOUT: float = 15.0
    SHEET_WRITE_TIMEOUT: float = 60.0
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    DASHBOARD_REFRESH_MINUTES: int = 5
    DASHBOARD_CACHE_MINUTES: int = 5

    # Local mutation ledger
    DATABASE_URL: str = "sqlite:///./ledger.db"

    BACKEND_CORS_ORIGINS: Union[str, List[str]] = ["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:3000", "http://127.0.0.1:5173"]
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "your-secret-key-here-change-this-in-production"
    REFRESH_SECRET_KEY: str = "your-refresh-secret-key-here-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

settings = Settings()

# Generate a unique server instance ID on startup
# This changes every time the server restarts, invalidating all existing tokens
SERVER_INSTANCE_ID: str = secrets.token_urlsafe(32)
