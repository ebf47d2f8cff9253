"""
Configuration Management for voiso.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (QWEN_API_URL, VOISO_DATABASE_URL, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    provider:
      base_url: https://dashscope.example.com/v1
      timeout_s: 60

    storage:
      base_dir: ./storage
      signed_url_ttl_s: 3600

    quota:
      plan_limits:
        free: 20
        creator: 200
        pro: 1000

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    All default values are defined here to ensure consistency across
    the codebase. These values are used when no override is provided
    via YAML config or environment variables.

    Sections:
        - Provider: Speech synthesis endpoint settings
        - Storage: Object storage and signed URL settings
        - Quota: Rolling window and plan limits
        - Auth: Bearer token verification
        - Database: Relational store connection
        - Logging: Log level and formatting
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Speech Provider
    # ─────────────────────────────────────────────────────────────────────────
    PROVIDER_BASE_URL = "https://placeholder-qwen-api.example.com/v1/tts"
    PROVIDER_API_KEY = ""
    PROVIDER_TIMEOUT_S = 60.0           # Single attempt, no retry
    PROVIDER_RESPONSE_FORMAT = "mp3"
    PROVIDER_MAX_NEW_TOKENS = 4096

    # ─────────────────────────────────────────────────────────────────────────
    # Object Storage
    # ─────────────────────────────────────────────────────────────────────────
    STORAGE_BASE_DIR = "./storage"
    STORAGE_SIGNING_SECRET = "change-me"
    STORAGE_SIGNED_URL_TTL_S = 3600     # Signed URL lifetime (1 hour)
    STORAGE_PUBLIC_BASE_URL = "http://localhost:8000"
    STORAGE_MAX_REFERENCE_BYTES = 20 * 1024 * 1024  # 20MB reference audio

    # ─────────────────────────────────────────────────────────────────────────
    # Quota
    # ─────────────────────────────────────────────────────────────────────────
    QUOTA_WINDOW_HOURS = 24
    QUOTA_DEFAULT_LIMIT = 20            # No profile: free tier default
    QUOTA_PLAN_LIMITS = {"free": 20, "creator": 200, "pro": 1000}

    # ─────────────────────────────────────────────────────────────────────────
    # Auth
    # ─────────────────────────────────────────────────────────────────────────
    AUTH_JWT_SECRET = ""
    AUTH_AUDIENCE = "authenticated"
    AUTH_ALGORITHMS = ("HS256",)

    # ─────────────────────────────────────────────────────────────────────────
    # Database
    # ─────────────────────────────────────────────────────────────────────────
    DATABASE_URL = "sqlite:///./voiso.db"
    DATABASE_ECHO = False

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80     # Characters to show in text preview
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


# Environment variables mapped onto (section, key) of the raw settings
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "QWEN_API_URL": ("provider", "base_url"),
    "QWEN_API_KEY": ("provider", "api_key"),
    "VOISO_DATABASE_URL": ("database", "url"),
    "VOISO_JWT_SECRET": ("auth", "jwt_secret"),
    "VOISO_STORAGE_DIR": ("storage", "base_dir"),
    "VOISO_SIGNING_SECRET": ("storage", "signing_secret"),
    "VOISO_PUBLIC_BASE_URL": ("storage", "public_base_url"),
}


@dataclass
class ProviderConfig:
    """
    Speech provider connection settings.

    base_url may be a full synthesis path, a versioned API root or a
    bare host; see provider.client.resolve_speech_endpoint().
    """
    base_url: str = Defaults.PROVIDER_BASE_URL
    api_key: str = Defaults.PROVIDER_API_KEY
    timeout_s: float = Defaults.PROVIDER_TIMEOUT_S
    response_format: str = Defaults.PROVIDER_RESPONSE_FORMAT
    max_new_tokens: int = Defaults.PROVIDER_MAX_NEW_TOKENS


@dataclass
class StorageConfig:
    """
    Object storage configuration.

    Audio objects live under base_dir and are served back through
    HMAC-signed URLs rooted at public_base_url.
    """
    base_dir: str = Defaults.STORAGE_BASE_DIR
    signing_secret: str = Defaults.STORAGE_SIGNING_SECRET
    signed_url_ttl_s: int = Defaults.STORAGE_SIGNED_URL_TTL_S
    public_base_url: str = Defaults.STORAGE_PUBLIC_BASE_URL
    max_reference_bytes: int = Defaults.STORAGE_MAX_REFERENCE_BYTES


@dataclass
class QuotaConfig:
    """
    Rolling quota configuration.

    A per-user override on the profile always wins over the plan limit.
    """
    window_hours: int = Defaults.QUOTA_WINDOW_HOURS
    default_limit: int = Defaults.QUOTA_DEFAULT_LIMIT
    plan_limits: Dict[str, int] = field(default_factory=lambda: dict(Defaults.QUOTA_PLAN_LIMITS))


@dataclass
class AuthConfig:
    """Bearer token verification settings."""
    jwt_secret: str = Defaults.AUTH_JWT_SECRET
    audience: Optional[str] = Defaults.AUTH_AUDIENCE
    algorithms: Tuple[str, ...] = Defaults.AUTH_ALGORITHMS


@dataclass
class DatabaseConfig:
    """Relational store connection settings (any SQLAlchemy URL)."""
    url: str = Defaults.DATABASE_URL
    echo: bool = Defaults.DATABASE_ECHO


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, quota decisions (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for the voiso services.

    This is the main configuration object created from Settings.
    It validates all values and provides typed access to configuration.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.quota.plan_limits)  # Typed access
    """
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Reads raw configuration dictionary, applies defaults for missing
        values, validates constraints, and returns typed configuration.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Provider configuration
        # ─────────────────────────────────────────────────────────────────────
        provider_raw = raw.get("provider", {}) or {}
        provider = ProviderConfig(
            base_url=str(provider_raw.get("base_url") or Defaults.PROVIDER_BASE_URL),
            api_key=str(provider_raw.get("api_key") or Defaults.PROVIDER_API_KEY),
            timeout_s=float(provider_raw.get("timeout_s", Defaults.PROVIDER_TIMEOUT_S)),
            response_format=str(provider_raw.get("response_format", Defaults.PROVIDER_RESPONSE_FORMAT)),
            max_new_tokens=int(provider_raw.get("max_new_tokens", Defaults.PROVIDER_MAX_NEW_TOKENS)),
        )
        cls._validate_positive("provider.timeout_s", provider.timeout_s)
        cls._validate_positive("provider.max_new_tokens", provider.max_new_tokens)
        if not provider.base_url.startswith(("http://", "https://")):
            raise ConfigValidationError(
                f"provider.base_url must be an http(s) URL, got {provider.base_url!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Storage configuration
        # ─────────────────────────────────────────────────────────────────────
        storage_raw = raw.get("storage", {}) or {}
        storage = StorageConfig(
            base_dir=str(storage_raw.get("base_dir", Defaults.STORAGE_BASE_DIR)),
            signing_secret=str(storage_raw.get("signing_secret", Defaults.STORAGE_SIGNING_SECRET)),
            signed_url_ttl_s=int(storage_raw.get("signed_url_ttl_s", Defaults.STORAGE_SIGNED_URL_TTL_S)),
            public_base_url=str(storage_raw.get("public_base_url", Defaults.STORAGE_PUBLIC_BASE_URL)).rstrip("/"),
            max_reference_bytes=int(storage_raw.get("max_reference_bytes", Defaults.STORAGE_MAX_REFERENCE_BYTES)),
        )
        cls._validate_positive("storage.signed_url_ttl_s", storage.signed_url_ttl_s)
        cls._validate_positive("storage.max_reference_bytes", storage.max_reference_bytes)
        if not storage.signing_secret:
            raise ConfigValidationError("storage.signing_secret must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Quota configuration
        # ─────────────────────────────────────────────────────────────────────
        quota_raw = raw.get("quota", {}) or {}
        plan_limits = dict(Defaults.QUOTA_PLAN_LIMITS)
        for plan, limit in (quota_raw.get("plan_limits") or {}).items():
            plan_limits[str(plan)] = int(limit)
        quota = QuotaConfig(
            window_hours=int(quota_raw.get("window_hours", Defaults.QUOTA_WINDOW_HOURS)),
            default_limit=int(quota_raw.get("default_limit", Defaults.QUOTA_DEFAULT_LIMIT)),
            plan_limits=plan_limits,
        )
        cls._validate_positive("quota.window_hours", quota.window_hours)
        cls._validate_non_negative("quota.default_limit", quota.default_limit)
        for plan, limit in quota.plan_limits.items():
            cls._validate_non_negative(f"quota.plan_limits.{plan}", limit)

        # ─────────────────────────────────────────────────────────────────────
        # Auth configuration
        # ─────────────────────────────────────────────────────────────────────
        auth_raw = raw.get("auth", {}) or {}
        algorithms = auth_raw.get("algorithms", Defaults.AUTH_ALGORITHMS)
        if isinstance(algorithms, str):
            algorithms = [a.strip() for a in algorithms.split(",") if a.strip()]
        auth = AuthConfig(
            jwt_secret=str(auth_raw.get("jwt_secret") or Defaults.AUTH_JWT_SECRET),
            audience=auth_raw.get("audience", Defaults.AUTH_AUDIENCE) or None,
            algorithms=tuple(algorithms),
        )
        if not auth.algorithms:
            raise ConfigValidationError("auth.algorithms must list at least one algorithm")

        # ─────────────────────────────────────────────────────────────────────
        # Database configuration
        # ─────────────────────────────────────────────────────────────────────
        database_raw = raw.get("database", {}) or {}
        database = DatabaseConfig(
            url=str(database_raw.get("url") or Defaults.DATABASE_URL),
            echo=bool(database_raw.get("echo", Defaults.DATABASE_ECHO)),
        )

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            provider=provider,
            storage=storage,
            quota=quota,
            auth=auth,
            database=database,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get validated ServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.

    Properties provide convenient typed access to common settings.
    """
    raw: Dict[str, Any]

    @property
    def provider_base_url(self) -> str:
        """Get the configured speech provider URL (unresolved)."""
        return str((self.raw.get("provider", {}) or {}).get("base_url") or Defaults.PROVIDER_BASE_URL)

    @property
    def database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        return str((self.raw.get("database", {}) or {}).get("url") or Defaults.DATABASE_URL)

    @property
    def storage_dir(self) -> str:
        """Get the object storage base directory."""
        return str((self.raw.get("storage", {}) or {}).get("base_dir", Defaults.STORAGE_BASE_DIR))

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Returns:
            Validated configuration object.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply ENV_OVERRIDES onto a raw settings dictionary in place.

    Empty environment values are ignored.
    """
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            section_raw = raw.get(section)
            if not isinstance(section_raw, dict):
                section_raw = {}
                raw[section] = section_raw
            section_raw[key] = value
    return raw


def load_settings(path: str = "config/settings.yaml", missing_ok: bool = False) -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides (see ENV_OVERRIDES) are applied on top
    of the file contents.

    Args:
        path: Path to the YAML configuration file.
        missing_ok: Fall back to defaults when the file doesn't exist.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist and
            missing_ok is False.
    """
    p = Path(path)
    raw: Dict[str, Any] = {}
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    elif not missing_ok:
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    return Settings(raw=apply_env_overrides(raw))
