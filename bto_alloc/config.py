"""Configuration management for bto-alloc."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bto_alloc.exceptions import ConfigurationError

KNOWN_SINKS = ("console", "json", "kafka")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class StorageConfig:
    """CSV persistence configuration."""

    data_dir: Path = field(default_factory=lambda: Path("data"))
    date_format: str = "%d/%m/%Y"


@dataclass
class EventConfig:
    """Domain event publishing configuration."""

    sinks: tuple[str, ...] = ()
    topic_prefix: str = "dev.bto"
    output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False

    def __post_init__(self) -> None:
        unknown = [name for name in self.sinks if name not in KNOWN_SINKS]
        if unknown:
            raise ConfigurationError(f"Unknown event sinks: {', '.join(unknown)}")

    def topic(self, entity: str) -> str:
        """Build the topic name for an entity type."""
        return f"{self.topic_prefix}.{entity}"


@dataclass
class EligibilityConfig:
    """Age thresholds for flat eligibility."""

    single_min_age: int = 35
    married_min_age: int = 21

    def __post_init__(self) -> None:
        if self.single_min_age < 0 or self.married_min_age < 0:
            raise ConfigurationError("Eligibility ages must be non-negative")


@dataclass
class ScenarioConfig:
    """Configuration for the launch scenario."""

    name: str = "launch"
    num_projects: int = 3
    num_applicants: int = 50
    num_officers: int = 5
    approval_rate: float = 0.8
    booking_rate: float = 0.7
    withdrawal_rate: float = 0.1


@dataclass
class BtoConfig:
    """Main configuration for bto-alloc."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    events: EventConfig = field(default_factory=EventConfig)
    eligibility: EligibilityConfig = field(default_factory=EligibilityConfig)
    scenario: ScenarioConfig | None = None
    seed: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "BtoConfig":
        """Create config from environment variables."""
        import os

        storage = StorageConfig(
            data_dir=Path(os.getenv("BTO_DATA_DIR", "data")),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        sinks_str = os.getenv("EVENT_SINKS", "")
        events = EventConfig(
            sinks=tuple(s.strip() for s in sinks_str.split(",") if s.strip()),
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.bto"),
            output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        seed_str = os.getenv("SEED")
        try:
            seed = int(seed_str) if seed_str else None
        except ValueError as exc:
            raise ConfigurationError(f"SEED must be an integer, got {seed_str!r}") from exc

        return cls(
            storage=storage,
            kafka=kafka,
            events=events,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
