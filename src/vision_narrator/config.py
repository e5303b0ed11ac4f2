"""
VisionNarrator Configuration
============================

This module handles configuration loading for the narrator service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    NARRATOR_MIN_INTERVAL_MS     -> gate.min_interval_ms
    NARRATOR_QUEUE_CAPACITY      -> queue.capacity
    NARRATOR_ADMISSION_MODE      -> processor.admission_mode
    NARRATOR_ENDPOINT_URL        -> describer.endpoint_url
    NARRATOR_DESCRIBER_BACKEND   -> describer.backend
    NARRATOR_CAPTURE_SOURCE      -> capture.source
    NARRATOR_SESSION_TRANSPORT   -> session.transport
    NARRATOR_SESSION_URL         -> session.url
    NARRATOR_PORT                -> server.port
    NARRATOR_LOG_LEVEL           -> logging.level
    PORT                         -> server.port (Cloud Run)

Example:
    from vision_narrator.config import settings

    print(settings.gate.min_interval_ms)
    print(settings.describer.endpoint_url)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AgentConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="vision-narrator", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class GateConfig(BaseModel):
    """Client-side rate gate configuration."""

    min_interval_ms: int = Field(
        default=4500,
        ge=0,
        description="Minimum spacing between the start of two description calls",
    )


class QueueConfig(BaseModel):
    """Frame queue configuration (queued admission mode only)."""

    capacity: int = Field(default=10, ge=1, description="Hard cap on queued frames")
    stale_after_ms: int = Field(
        default=5000,
        ge=0,
        description="Low-priority frames older than this are evicted",
    )


class DetectionConfig(BaseModel):
    """Scene change detection configuration."""

    similarity_threshold: float = Field(
        default=0.7,
        gt=0,
        le=1.0,
        description="Descriptions below this word overlap are significant",
    )


class MetricsConfig(BaseModel):
    """Performance metric smoothing configuration."""

    initial_processing_time_ms: float = Field(default=2000.0, ge=0)
    initial_success_rate: float = Field(default=1.0, ge=0, le=1.0)
    processing_time_alpha: float = Field(
        default=0.2,
        gt=0,
        le=1.0,
        description="EMA weight of each latency sample",
    )
    success_rate_alpha: float = Field(
        default=0.1,
        gt=0,
        le=1.0,
        description="EMA weight of each success/failure sample",
    )


class ProcessorConfig(BaseModel):
    """Vision processor configuration."""

    admission_mode: str = Field(
        default="direct",
        description="Admission policy: 'direct' or 'queued'",
    )
    idle_poll_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Background loop wait when the queue is empty",
    )
    busy_poll_seconds: float = Field(
        default=0.5,
        gt=0,
        description="Background loop wait while a call is in flight",
    )
    post_call_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Background loop pause after each processed frame",
    )


class SamplingConfig(BaseModel):
    """Periodic sampler configuration."""

    auto_interval_seconds: float = Field(
        default=6.0,
        gt=0,
        description="Automatic analysis cadence while a call is active",
    )
    display_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Display-only capture cadence while no call is active",
    )


class DescriberConfig(BaseModel):
    """Description endpoint configuration (client and server side)."""

    endpoint_url: str = Field(
        default="http://localhost:8002/api/vision",
        description="URL of the description endpoint",
    )
    timeout_seconds: float = Field(default=30.0, gt=0)
    backend: str = Field(
        default="mock",
        description="Generator behind /api/vision: 'mock' or 'gemini'",
    )
    model: str = Field(default="gemini-2.0-flash-lite")
    max_output_tokens: int = Field(default=80, ge=1)
    temperature: float = Field(default=0.2, ge=0)
    top_p: float = Field(default=0.8, gt=0, le=1.0)
    server_min_interval_ms: int = Field(
        default=5000,
        ge=0,
        description="Independent minimum interval enforced by the endpoint",
    )
    quota_retry_after_seconds: int = Field(default=60, ge=1)


class CaptureConfig(BaseModel):
    """Capture surface configuration."""

    source: str = Field(default="static", description="'static' or 'camera'")
    device: int = Field(default=0, ge=0, description="OpenCV camera index")
    width: int = Field(default=320, ge=16)
    height: int = Field(default=240, ge=16)
    jpeg_quality: int = Field(default=80, ge=1, le=100)
    static_paths: List[str] = Field(
        default_factory=list,
        description="Image files cycled by the static source",
    )


class SessionConfig(BaseModel):
    """Voice/chat session transport configuration."""

    transport: str = Field(default="logging", description="'logging' or 'websocket'")
    url: str = Field(default="ws://localhost:8003/ws/session")
    history_size: int = Field(default=5, ge=1)


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for VisionNarrator.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    agent: AgentConfig = Field(default_factory=AgentConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    describer: DescriberConfig = Field(default_factory=DescriberConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Gate and queue
    if env_interval := os.environ.get("NARRATOR_MIN_INTERVAL_MS"):
        config_data.setdefault("gate", {})["min_interval_ms"] = int(env_interval)
    if env_capacity := os.environ.get("NARRATOR_QUEUE_CAPACITY"):
        config_data.setdefault("queue", {})["capacity"] = int(env_capacity)

    # Processor
    if env_mode := os.environ.get("NARRATOR_ADMISSION_MODE"):
        config_data.setdefault("processor", {})["admission_mode"] = env_mode

    # Describer
    if env_url := os.environ.get("NARRATOR_ENDPOINT_URL"):
        config_data.setdefault("describer", {})["endpoint_url"] = env_url
    if env_backend := os.environ.get("NARRATOR_DESCRIBER_BACKEND"):
        config_data.setdefault("describer", {})["backend"] = env_backend

    # Capture
    if env_source := os.environ.get("NARRATOR_CAPTURE_SOURCE"):
        config_data.setdefault("capture", {})["source"] = env_source

    # Session
    if env_transport := os.environ.get("NARRATOR_SESSION_TRANSPORT"):
        config_data.setdefault("session", {})["transport"] = env_transport
    if env_session_url := os.environ.get("NARRATOR_SESSION_URL"):
        config_data.setdefault("session", {})["url"] = env_session_url

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("NARRATOR_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("NARRATOR_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def get_google_api_key() -> Optional[str]:
    """Return the Gemini API key from the environment, if any."""
    return os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY")


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
