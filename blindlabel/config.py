"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path

from .extraction.allergens import AllergenProfile
from .speech.planner import ReadingPreferences, clamp_rate

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class ClaudeConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class ExtractionConfig:
    backend: str = "gemini"
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)


@dataclass
class BarcodeConfig:
    enabled: bool = True
    base_url: str = "https://world.openfoodfacts.org/api/v2/product"
    user_agent: str = "BlindLabel/1.0 (Python; blindlabel)"
    timeout: float = 10.0


@dataclass
class AllergenConfig:
    common: list[str] = field(default_factory=list)
    custom: list[str] = field(default_factory=list)

    def profile(self) -> AllergenProfile:
        return AllergenProfile.from_names(self.common, self.custom)


@dataclass
class QAConfig:
    enabled: bool = True


@dataclass
class BlindLabelConfig:
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    barcode: BarcodeConfig = field(default_factory=BarcodeConfig)
    reading: ReadingPreferences = field(default_factory=ReadingPreferences)
    allergens: AllergenConfig = field(default_factory=AllergenConfig)
    qa: QAConfig = field(default_factory=QAConfig)


def load_config(path: str | Path | None = None) -> BlindLabelConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path).expanduser()
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    ext = raw.get("extraction", {})
    bar = raw.get("barcode", {})
    spc = raw.get("speech", {})
    alg = raw.get("allergens", {})
    qa = raw.get("qa", {})

    gemini_cfg = ext.get("gemini", {})
    claude_cfg = ext.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    return BlindLabelConfig(
        extraction=ExtractionConfig(
            backend=ext.get("backend", "gemini"),
            gemini=GeminiConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
            claude=ClaudeConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        barcode=BarcodeConfig(
            enabled=bar.get("enabled", True),
            base_url=bar.get(
                "base_url", "https://world.openfoodfacts.org/api/v2/product"
            ),
            user_agent=bar.get("user_agent", "BlindLabel/1.0 (Python; blindlabel)"),
            timeout=float(bar.get("timeout", 10.0)),
        ),
        reading=_reading_preferences(spc),
        allergens=AllergenConfig(
            common=list(alg.get("common", [])),
            custom=list(alg.get("custom", [])),
        ),
        qa=QAConfig(enabled=qa.get("enabled", True)),
    )


def _reading_preferences(speech: dict) -> ReadingPreferences:
    """Build ReadingPreferences from [speech] and [speech.reading]."""
    flags = speech.get("reading", {})
    known = {
        f.name for f in fields(ReadingPreferences)
        if f.name not in ("speech_rate", "auto_play")
    }
    return ReadingPreferences(
        speech_rate=clamp_rate(float(speech.get("rate", 1.0))),
        auto_play=speech.get("auto_play", True),
        **{name: bool(value) for name, value in flags.items() if name in known},
    )
