"""
Configuration management for LexCanada.

Settings are read from the environment (and an optional .env file) and
grouped into sections: database, security, application, AI providers,
payments and e-signatures.
"""

import logging
from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_settings_config = SettingsConfigDict(extra="ignore", case_sensitive=False)


class DatabaseConfig(BaseSettings):
    """Database configuration with security validation."""

    model_config = _settings_config

    # Full URL wins over the individual components
    database_url: Optional[str] = Field(default=None)

    db_user: str = Field(default="lexcanada")
    db_password: Optional[str] = Field(default=None)
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="lexcanada")

    # Connection pool settings
    db_pool_size: int = Field(default=10)
    db_max_overflow: int = Field(default=20)
    db_pool_timeout: int = Field(default=30)

    @field_validator('db_password')
    @classmethod
    def validate_db_password(cls, v):
        """Validate database password strength."""
        if v is not None and (v == 'password' or len(v) < 8):
            raise ValueError('Database password must be at least 8 characters and not be "password"')
        return v

    @field_validator('db_port')
    @classmethod
    def validate_db_port(cls, v):
        """Validate database port."""
        if not 1 <= v <= 65535:
            raise ValueError('Database port must be between 1 and 65535')
        return v

    @property
    def url(self) -> str:
        """Get database URL."""
        if self.database_url:
            return self.database_url
        password = self.db_password or ""
        return f"postgresql://{self.db_user}:{password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class SecurityConfig(BaseSettings):
    """Security configuration with validation."""

    model_config = _settings_config

    # JWT settings
    secret_key: str = Field(...)
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)

    # Password settings
    min_password_length: int = Field(default=8)
    max_password_length: int = Field(default=128)

    # Rate limiting
    max_login_attempts: int = Field(default=5)
    login_lockout_minutes: int = Field(default=15)
    ai_requests_per_minute: int = Field(default=30)

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v):
        """Validate secret key strength."""
        if v in ('supersecretkey', 'changeme') or len(v) < 32:
            raise ValueError('Secret key must be at least 32 characters and not be the default')
        return v


class ApplicationConfig(BaseSettings):
    """Main application configuration."""

    model_config = _settings_config

    # Application settings
    app_name: str = Field(default="LexCanada")
    app_version: str = Field(default="1.0.0")
    app_description: str = Field(default="Canadian legal services API")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8050)
    cors_origins: str = Field(default="*")
    frontend_url: str = Field(default="http://localhost:5173")

    # Data limits
    max_contract_length: int = Field(default=100000)
    max_upload_size_mb: int = Field(default=10)
    max_chat_message_length: int = Field(default=10000)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        valid_envs = ['development', 'test', 'staging', 'production']
        if v not in valid_envs:
            raise ValueError(f'Environment must be one of: {valid_envs}')
        return v

    @field_validator('api_port')
    @classmethod
    def validate_api_port(cls, v):
        """Validate API port."""
        if not 1 <= v <= 65535:
            raise ValueError('API port must be between 1 and 65535')
        return v

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class AIConfig(BaseSettings):
    """LLM provider credentials and model names."""

    model_config = _settings_config

    deepseek_api_key: Optional[str] = Field(default=None)
    deepseek_base_url: str = Field(default="https://api.deepseek.com/v1")
    deepseek_model: str = Field(default="deepseek-chat")

    anthropic_api_key: Optional[str] = Field(default=None)
    anthropic_model: str = Field(default="claude-3-7-sonnet-20250219")

    openai_api_key: Optional[str] = Field(default=None)
    openai_model: str = Field(default="gpt-4o")

    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: str = Field(default="gemini-2.5-flash")

    llm_timeout_seconds: float = Field(default=60.0)
    llm_max_retries: int = Field(default=3)


class PaymentConfig(BaseSettings):
    """Stripe configuration."""

    model_config = _settings_config

    stripe_secret_key: Optional[str] = Field(default=None)
    stripe_webhook_secret: Optional[str] = Field(default=None)
    stripe_trial_days: int = Field(default=7)

    @property
    def is_configured(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_secret_key.strip())


class SignatureConfig(BaseSettings):
    """DocuSeal configuration."""

    model_config = _settings_config

    docuseal_api_key: Optional[str] = Field(default=None)
    docuseal_api_url: str = Field(default="https://api.docuseal.com/v1")
    docuseal_template_id: Optional[str] = Field(default=None)
    docuseal_timeout_seconds: float = Field(default=15.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.docuseal_api_key)


class Config:
    """Main configuration class that combines all config sections."""

    def __init__(self):
        """Initialize configuration with validation."""
        try:
            self.database = DatabaseConfig()
            self.security = SecurityConfig()
            self.application = ApplicationConfig()
            self.ai = AIConfig()
            self.payments = PaymentConfig()
            self.signatures = SignatureConfig()

            logger.info("Configuration loaded successfully")

        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def get_database_url(self) -> str:
        """Get database URL."""
        return self.database.url

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.application.environment == 'production'


# Global configuration instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
