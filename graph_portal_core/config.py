"""
Configuration for Graph Portal.

Layout constants live in LayoutSettings; service-level switches are read from
the environment (a local .env is loaded when present).
"""
import os
from dataclasses import dataclass
from typing import Tuple
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class LayoutSettings:
    width: float = 800.0
    height: float = 600.0
    padding: float = 50.0
    circular_threshold: int = 8  # graphs up to this size are laid out on a circle
    iterations: int = 50
    repulsion: float = 30.0
    attraction: float = 0.3
    max_step: float = 10.0
    edge_color: str = "#555"
    edge_width: int = 2

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) every position is clamped into."""
        return (
            self.padding,
            self.padding,
            self.width - self.padding,
            self.height - self.padding,
        )


@dataclass(frozen=True)
class ServiceSettings:
    layout_timeout_seconds: float = 10.0
    deduplicate_edges: bool = False
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_service_settings() -> ServiceSettings:
    """Build ServiceSettings from GRAPH_* environment variables."""
    origins = os.getenv("GRAPH_CORS_ORIGINS", "*")
    return ServiceSettings(
        layout_timeout_seconds=float(os.getenv("GRAPH_LAYOUT_TIMEOUT_SECONDS", "10")),
        deduplicate_edges=_env_flag("GRAPH_DEDUPLICATE_EDGES", False),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        log_level=os.getenv("GRAPH_LOG_LEVEL", "INFO").upper(),
    )


DEFAULT_LAYOUT = LayoutSettings()
