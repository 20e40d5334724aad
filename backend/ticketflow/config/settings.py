"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "ticketflow_dev"
    # Multi-document transactions need a replica set; disable for standalone servers
    mongo_use_transactions: bool = True
    
    # Hosted auth provider (HS256 signed access tokens)
    auth_jwt_secret: str = ""
    auth_jwt_audience: str = "authenticated"
    
    # Tenant used when a token carries no tenant claim
    default_tenant_id: str = "default"
    
    # Email gateway
    email_api_url: str = ""
    email_api_key: str = ""
    email_from: str = "support@ticketflow.local"
    
    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    
    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"
    
    # Frontend URL (for email links)
    frontend_url: str = "http://localhost:3000"
    
    # Scheduler
    scheduler_interval_seconds: int = 10  # Process notifications every 10 seconds
    notification_max_retries: int = 5
    
    # Environment
    environment: str = "development"
    debug: bool = True
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]
    
    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"
    
    @property
    def is_development(self) -> bool:
        """Check if running in a local/dev environment"""
        return self.environment.lower() in ["development", "dev", "local"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
