"""Free-text probe requests to typed configurations.

Handles requests like "probe gpt-4o adaptive quick max 50k precision 200".
Keywords are matched case-insensitively; numbers accept a k suffix
(thousands) and thousands separators.
"""

import re

from ctxprobe.catalog import ModelCatalog
from ctxprobe.models import ProbeConfiguration
from ctxprobe.probing.presets import PRESETS, configuration_for_preset
from ctxprobe.probing.service import ConfigurationError, validate_configuration

DEFAULT_MODEL = "gpt-4o"

STRATEGY_KEYWORDS: dict[str, str] = {
    "linear": "linear",
    "binary": "binary",
    "bisect": "binary",
    "adaptive": "adaptive",
    "smart": "adaptive",
}

# option name -> ProbeConfiguration field
NUMBER_OPTIONS: dict[str, str] = {
    "min": "min_tokens",
    "max": "max_tokens",
    "step": "step_size",
    "precision": "precision",
    "attempts": "max_attempts",
    "timeout": "timeout_seconds",
    "retries": "retry_count",
    "output": "output_tokens",
}

_NUMBER_RE = re.compile(
    r"\b(?P<option>" + "|".join(NUMBER_OPTIONS) + r")\b\s*[:=]?\s*(?P<value>\d[\d,_]*(?:\.\d+)?)\s*(?P<k>k\b)?",
    re.IGNORECASE,
)


def parse_probe_request(text: str, catalog: ModelCatalog) -> ProbeConfiguration:
    """Raises ConfigurationError when the parsed values do not form a valid probe."""
    lowered = text.lower()
    model = _match_model(lowered, catalog)
    words = set(re.findall(r"[a-z]+", lowered))

    values: dict[str, object] = {}
    strategy = next((STRATEGY_KEYWORDS[w] for w in STRATEGY_KEYWORDS if w in words), None)
    if strategy:
        values["strategy"] = strategy

    for match in _NUMBER_RE.finditer(text):
        field = NUMBER_OPTIONS[match.group("option").lower()]
        number = float(match.group("value").replace(",", "").replace("_", ""))
        if match.group("k"):
            number *= 1000
        values[field] = number if field == "timeout_seconds" else int(number)

    preset = next((p for p in PRESETS if p in words), None)
    if preset:
        config = configuration_for_preset(model, preset, **values)
    else:
        config = ProbeConfiguration(model=model, **values)

    errors = validate_configuration(config)
    if errors:
        raise ConfigurationError(errors)
    return config


def _match_model(lowered: str, catalog: ModelCatalog) -> str:
    """Longest catalog id present in the text wins, so 'gpt-4o-mini' beats 'gpt-4o'."""
    names = sorted((d.model for d in catalog.list_models()), key=len, reverse=True)
    for name in names:
        if re.search(rf"(?<![\w.-]){re.escape(name.lower())}(?![\w.-])", lowered):
            return name
    return DEFAULT_MODEL
