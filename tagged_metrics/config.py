"""
Configuration for tagged_metrics.

Environment variables:
    METRICS_ENABLE_ALL     "true"/"false", activate every source
    METRICS_ENABLED_TAGS   comma-separated tag names to enable
    METRICS_REPORTER       nop | console | memory
    METRICS_LOG_LEVEL      DEBUG, INFO, ...; also routes package logs to stdout

Usage:
    from tagged_metrics.config import load_config, apply_config

    apply_config(load_config())
"""

import os
from typing import Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from tagged_metrics.errors import ConfigurationError
from tagged_metrics.registry import Predicate, SourceRegistry, get_registry
from tagged_metrics.reporters import ConsoleReporter, MemoryReporter
from tagged_metrics.reporting import NopReporter, Reporter, set_reporter
from tagged_metrics.schema import is_valid_name
from tagged_metrics.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

REPORTERS = {
    "nop": NopReporter,
    "console": ConsoleReporter,
    "memory": MemoryReporter,
}


class MetricsConfig(BaseModel):
    """Startup settings for the activation predicate and reporter."""
    enable_all: bool = Field(
        default=False,
        description="Activate every source regardless of its tags",
    )
    enabled_tags: List[str] = Field(
        default_factory=list,
        description="Tag names whose sources are active",
    )
    reporter: Literal["nop", "console", "memory"] = Field(
        default="nop",
        description="Which bundled reporter to install",
    )
    log_level: Optional[str] = Field(
        default=None,
        description="If set, send tagged_metrics logs to stdout at this level",
    )

    @field_validator("enabled_tags")
    @classmethod
    def _check_tag_names(cls, value: List[str]) -> List[str]:
        bad = [name for name in value if not is_valid_name(name)]
        if bad:
            raise ValueError(f"invalid tag names: {bad}")
        return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> MetricsConfig:
    """
    Build a MetricsConfig from environment variables.

    Raises:
        ConfigurationError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ
    raw: Dict[str, object] = {}

    if env.get("METRICS_ENABLE_ALL"):
        raw["enable_all"] = env["METRICS_ENABLE_ALL"].strip()
    if env.get("METRICS_ENABLED_TAGS"):
        raw["enabled_tags"] = [
            t.strip() for t in env["METRICS_ENABLED_TAGS"].split(",") if t.strip()
        ]
    if env.get("METRICS_REPORTER"):
        raw["reporter"] = env["METRICS_REPORTER"].strip().lower()
    if env.get("METRICS_LOG_LEVEL"):
        raw["log_level"] = env["METRICS_LOG_LEVEL"].strip()

    try:
        return MetricsConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(
            "invalid metrics configuration",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def apply_config(config: MetricsConfig, registry: Optional[SourceRegistry] = None) -> Reporter:
    """Install the configured reporter and replace the registry's predicate."""
    if registry is None:
        registry = get_registry()
    if config.log_level:
        configure_logging(config.log_level)

    new_reporter = REPORTERS[config.reporter]()
    set_reporter(new_reporter)

    def mutate(p: Predicate) -> None:
        p.enable_all = config.enable_all
        p.enabled_tags = set(config.enabled_tags)

    registry.update_predicate(mutate)
    logger.info(
        f"Applied metrics config: reporter={config.reporter}, "
        f"enable_all={config.enable_all}, tags={sorted(config.enabled_tags)}"
    )
    return new_reporter
