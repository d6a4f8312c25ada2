"""Named probe presets: quick, standard, deep."""

from typing import Any

from ctxprobe.models import ProbeConfiguration
from ctxprobe.probing.service import ConfigurationError

PRESETS: dict[str, dict[str, Any]] = {
    "quick": {
        "max_tokens": 100_000,
        "step_size": 20_000,
        "timeout_seconds": 15.0,
        "retry_count": 2,
    },
    "standard": {
        "max_tokens": 200_000,
        "step_size": 10_000,
        "timeout_seconds": 30.0,
        "retry_count": 3,
    },
    "deep": {
        "max_tokens": 300_000,
        "step_size": 5_000,
        "timeout_seconds": 60.0,
        "retry_count": 5,
    },
}


def list_presets() -> list[str]:
    return list(PRESETS)


def configuration_for_preset(model: str, preset: str, **overrides: Any) -> ProbeConfiguration:
    """Build a configuration from a preset; keyword overrides win over preset values."""
    try:
        values = dict(PRESETS[preset])
    except KeyError:
        raise ConfigurationError(
            [f"Unknown preset '{preset}'. Available: {', '.join(PRESETS)}"]
        )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ProbeConfiguration(model=model, **values)
