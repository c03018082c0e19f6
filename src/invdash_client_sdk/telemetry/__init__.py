from .events import TELEMETRY_CATEGORIES, TelemetryEvent, build_event
from .sink import TelemetryLogger

__all__ = ["TELEMETRY_CATEGORIES", "TelemetryEvent", "TelemetryLogger", "build_event"]
