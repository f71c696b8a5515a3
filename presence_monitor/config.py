"""
Configuration management for the presence monitor.

``Settings`` is read once from the environment at startup. The signaling
thresholds are then copied into a ``ConfigStore``, which the admin API may
change at runtime; the decision engine only sees immutable
``SignalingConfig`` snapshots taken from that store.
"""
import threading
from dataclasses import asdict, dataclass, replace
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file='.env', env_file_encoding='utf-8', env_prefix='PRESENCE_', extra='ignore'
    )

    # Application Settings
    app_name: str = Field(default="Presence Monitor")
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    log_json: bool = Field(default=False)

    # Detector / capture
    detector: str = Field(default="upper_body")
    resources_path: Optional[str] = Field(default=None)
    camera_index: int = Field(default=0, ge=0)

    # Signaling thresholds (milliseconds)
    max_gap_ms: int = Field(default=200, ge=0)
    min_continuous_ms: int = Field(default=1000, ge=0)
    min_resignal_gap_ms: int = Field(default=2000, ge=0)
    frame_interval_ms: int = Field(default=100, ge=0)

    # Evidence
    evidence_saving_enabled: bool = Field(default=True)
    evidence_dir: str = Field(default="frame")

    # Alert Configuration
    enable_webhook: bool = Field(default=False)
    webhook_url: Optional[str] = Field(default=None)
    webhook_timeout_seconds: float = Field(default=5.0, gt=0)

    # Admin API
    api_enabled: bool = Field(default=True)
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000)
    max_decisions: int = Field(default=1000, ge=1)

    # Monitoring
    enable_metrics: bool = Field(default=False)
    metrics_port: int = Field(default=9100)


@dataclass(frozen=True)
class SignalingConfig:
    """Immutable snapshot of the runtime-adjustable signaling parameters."""

    max_gap_ms: int = 200
    min_continuous_ms: int = 1000
    min_resignal_gap_ms: int = 2000
    frame_interval_ms: int = 100
    evidence_saving_enabled: bool = True
    evidence_dir: str = "frame"

    def __post_init__(self) -> None:
        for name in ("max_gap_ms", "min_continuous_ms", "min_resignal_gap_ms", "frame_interval_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer number of milliseconds, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignalingConfig":
        return cls(
            max_gap_ms=settings.max_gap_ms,
            min_continuous_ms=settings.min_continuous_ms,
            min_resignal_gap_ms=settings.min_resignal_gap_ms,
            frame_interval_ms=settings.frame_interval_ms,
            evidence_saving_enabled=settings.evidence_saving_enabled,
            evidence_dir=settings.evidence_dir,
        )

    def to_dict(self) -> Dict:
        return asdict(self)


class ConfigStore:
    """
    Thread-safe holder of the current ``SignalingConfig``.

    Every write replaces the snapshot, so readers holding an older snapshot
    keep a consistent view for the event they are processing.
    """

    def __init__(self, config: Optional[SignalingConfig] = None) -> None:
        self._lock = threading.Lock()
        self._config = config or SignalingConfig()

    def snapshot(self) -> SignalingConfig:
        with self._lock:
            return self._config

    def update(self, **changes) -> SignalingConfig:
        """
        Apply a partial update atomically.

        Raises:
            ValueError: if a field is unknown or a value is invalid
        """
        unknown = set(changes) - set(SignalingConfig.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown configuration fields: {sorted(unknown)}")
        with self._lock:
            self._config = replace(self._config, **changes)
            return self._config

    # Typed accessors for the management surface

    def get_max_gap_ms(self) -> int:
        return self.snapshot().max_gap_ms

    def set_max_gap_ms(self, value: int) -> None:
        self.update(max_gap_ms=value)

    def get_min_continuous_ms(self) -> int:
        return self.snapshot().min_continuous_ms

    def set_min_continuous_ms(self, value: int) -> None:
        self.update(min_continuous_ms=value)

    def get_min_resignal_gap_ms(self) -> int:
        return self.snapshot().min_resignal_gap_ms

    def set_min_resignal_gap_ms(self, value: int) -> None:
        self.update(min_resignal_gap_ms=value)

    def get_frame_interval_ms(self) -> int:
        return self.snapshot().frame_interval_ms

    def set_frame_interval_ms(self, value: int) -> None:
        self.update(frame_interval_ms=value)

    def get_evidence_saving_enabled(self) -> bool:
        return self.snapshot().evidence_saving_enabled

    def set_evidence_saving_enabled(self, value: bool) -> None:
        self.update(evidence_saving_enabled=bool(value))


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Global settings instance, read from the environment on first use.

    Raises:
        pydantic.ValidationError: if an environment value is invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
