"""
Configuration management for TrackFlow Tasks.

This module provides centralized configuration management using environment variables
and default values. Configuration is loaded from environment variables with
fallbacks to sensible defaults for development.
"""

import tempfile
from pathlib import Path
from typing import Dict, Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from the project root, then from the current working directory
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")
load_dotenv()


class RabbitMQConfig(BaseSettings):
    """RabbitMQ connection configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    host: str = Field(default="localhost", alias="RABBITMQ_HOST")
    port: int = Field(default=5672, alias="RABBITMQ_PORT")
    username: str = Field(default="guest", alias="RABBITMQ_DEFAULT_USER")
    password: str = Field(default="guest", alias="RABBITMQ_DEFAULT_PASS")
    vhost: str = Field(default="/", alias="RABBITMQ_VHOST")

    @property
    def broker_url(self) -> str:
        """Get the complete broker URL for Celery."""
        vhost_part = self.vhost if self.vhost != '/' else ''
        return f"pyamqp://{self.username}:{self.password}@{self.host}:{self.port}/{vhost_part}"

    @property
    def result_backend(self) -> str:
        """Get the result backend URL."""
        return "rpc://"


class CeleryConfig(BaseSettings):
    """Celery application configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    task_serializer: str = Field(default="json")
    result_serializer: str = Field(default="json")
    accept_content: list[str] = Field(default=["json"])
    timezone: str = Field(default="UTC")
    enable_utc: bool = Field(default=True)

    # Task configuration
    task_always_eager: bool = Field(default=False, alias="CELERY_TASK_ALWAYS_EAGER")
    task_eager_propagates: bool = Field(default=True)
    task_acks_late: bool = Field(default=True)
    worker_prefetch_multiplier: int = Field(default=1)

    # Task time limits
    task_soft_time_limit: int = Field(default=1800)  # 30 minutes
    task_time_limit: int = Field(default=3600)  # 1 hour

    # Worker configuration
    worker_concurrency: int = Field(default=2, alias="WORKER_CONCURRENCY")
    worker_log_level: str = Field(default="INFO", alias="WORKER_LOG_LEVEL")

    task_routes: Dict[str, Dict[str, str]] = Field(default={
        "trackflow_tasks.tasks.imports.*": {"queue": "imports"},
    })

    task_annotations: Dict[str, Dict[str, Any]] = Field(default={
        "trackflow_tasks.tasks.imports.import_activity_file": {
            "time_limit": 300,   # 5 minutes
            "soft_time_limit": 240,
        },
    })


class ImportConfig(BaseSettings):
    """Activity import pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    scratch_dir: Optional[str] = Field(default=None, alias="IMPORT_SCRATCH_DIR")
    upload_dir: str = Field(default=str(Path(tempfile.gettempdir()) / "trackflow" / "uploads"),
                            alias="IMPORT_UPLOAD_DIR")
    max_entry_size_mb: int = Field(default=100, gt=0, alias="IMPORT_MAX_ENTRY_SIZE_MB")
    max_decompressed_size_mb: int = Field(default=256, gt=0, alias="IMPORT_MAX_DECOMPRESSED_SIZE_MB")
    max_reported_errors: int = Field(default=10, ge=0, alias="IMPORT_MAX_REPORTED_ERRORS")

    # Single bulk job per user
    admission_backend: Literal["file", "memory"] = Field(default="file", alias="IMPORT_ADMISSION_BACKEND")
    admission_lock_dir: str = Field(default=str(Path(tempfile.gettempdir()) / "trackflow" / "locks"),
                                    alias="IMPORT_ADMISSION_LOCK_DIR")
    admission_ttl_seconds: int = Field(default=3600, gt=0, alias="IMPORT_ADMISSION_TTL_SECONDS")

    activity_store: str = Field(default="trackflow.storage.memory:InMemoryActivityStore",
                                alias="IMPORT_ACTIVITY_STORE")

    @property
    def max_entry_size_bytes(self) -> int:
        return self.max_entry_size_mb * 1024 * 1024

    @property
    def max_decompressed_bytes(self) -> int:
        return self.max_decompressed_size_mb * 1024 * 1024


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    level: str = Field(default="INFO", alias="LOG_LEVEL")
    format: Literal["console", "json"] = Field(default="console", alias="LOG_FORMAT")
    file: Optional[str] = Field(default=None, alias="LOG_FILE")


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Configuration sections
    rabbitmq: RabbitMQConfig = Field(default_factory=RabbitMQConfig)
    celery: CeleryConfig = Field(default_factory=CeleryConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def get_celery_config(self) -> Dict[str, Any]:
        """Get complete Celery configuration dictionary."""
        return {
            # Broker settings
            "broker_url": self.rabbitmq.broker_url,
            "result_backend": self.rabbitmq.result_backend,

            # Serialization
            "task_serializer": self.celery.task_serializer,
            "result_serializer": self.celery.result_serializer,
            "accept_content": self.celery.accept_content,

            # Timezone
            "timezone": self.celery.timezone,
            "enable_utc": self.celery.enable_utc,

            # Task configuration
            "task_always_eager": self.celery.task_always_eager,
            "task_eager_propagates": self.celery.task_eager_propagates,
            "task_acks_late": self.celery.task_acks_late,
            "worker_prefetch_multiplier": self.celery.worker_prefetch_multiplier,

            # Time limits
            "task_soft_time_limit": self.celery.task_soft_time_limit,
            "task_time_limit": self.celery.task_time_limit,

            # Task routing
            "task_routes": self.celery.task_routes,
            "task_annotations": self.celery.task_annotations,

            # Result configuration
            "result_expires": 3600,  # 1 hour
            "result_persistent": True,

            # Worker configuration
            "worker_send_task_events": True,
            "task_send_sent_event": True,

            # Include modules
            "include": [
                "trackflow_tasks.tasks.imports",
            ],
        }


# Global settings instance
settings = Settings()


def get_rabbitmq_config() -> RabbitMQConfig:
    """Get RabbitMQ configuration."""
    return settings.rabbitmq


def get_import_config() -> ImportConfig:
    """Get import pipeline configuration."""
    return settings.imports


def get_celery_config() -> Dict[str, Any]:
    """Get Celery configuration dictionary."""
    return settings.get_celery_config()


def get_settings() -> Settings:
    """Get complete application settings."""
    return settings
