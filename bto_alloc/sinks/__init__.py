"""Output sinks for domain events and data snapshots."""

from typing import Any, Protocol

from bto_alloc.config import BtoConfig
from bto_alloc.sinks.console import ConsoleSink
from bto_alloc.sinks.json_file import JsonFileSink
from bto_alloc.sinks.kafka import KafkaSink


class Sink(Protocol):
    """Anything that can receive events and record batches."""

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        ...

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        ...

    def close(self) -> None:
        ...


def build_sinks(config: BtoConfig) -> list[Sink]:
    """Instantiate the sinks named in ``config.events.sinks``."""
    sinks: list[Sink] = []
    for name in config.events.sinks:
        if name == "console":
            sinks.append(ConsoleSink(pretty=config.events.pretty_json))
        elif name == "json":
            sinks.append(JsonFileSink(config.events.output_dir, pretty=config.events.pretty_json))
        elif name == "kafka":
            sinks.append(KafkaSink(config.kafka, topic_prefix=config.events.topic_prefix))
    return sinks


__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink", "Sink", "build_sinks"]
