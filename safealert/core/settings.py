"""
Core settings and environment variables for SafeAlert.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """
    
    # Application
    APP_NAME: str = "SafeAlert"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # CORS - UI shells allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    
    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    
    # In-process report store for local development without Firebase credentials
    USE_MEMORY_STORE: bool = False
    
    # Device-local state (seen reports, notification preferences)
    LOCAL_STATE_PATH: str = "./device_state.json"
    
    # Approval fan-out: send real FCM messages, or only log them
    PUSH_ENABLED: bool = False
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins_list(self) -> list:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
