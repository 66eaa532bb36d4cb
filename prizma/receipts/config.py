"""TOML configuration loader for the receipt extraction engine."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class GoogleVisionConfig:
    api_key: str = ""
    project_id: str = ""
    credentials_path: str = ""


@dataclass
class GPTVisionConfig:
    api_key: str = ""
    model: str = "gpt-4o"


@dataclass
class ClaudeOCRConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiOCRConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class OCRConfig:
    engines: list[str] = field(
        default_factory=lambda: ["google_vision", "gpt_vision"]
    )
    timeout: float = 30.0
    max_workers: int = 2
    google_vision: GoogleVisionConfig = field(default_factory=GoogleVisionConfig)
    gpt_vision: GPTVisionConfig = field(default_factory=GPTVisionConfig)
    claude: ClaudeOCRConfig = field(default_factory=ClaudeOCRConfig)
    gemini: GeminiOCRConfig = field(default_factory=GeminiOCRConfig)


@dataclass
class ImageConfig:
    min_width: int = 800
    min_brightness: float = 100.0
    target_width: int = 1600
    max_variants: int = 3


@dataclass
class ThresholdConfig:
    # Printed total vs. sum of items, in percent
    total_tolerance_pct: float = 5.0
    # qty x unit vs. printed line total, as a fraction
    multiline_tolerance: float = 0.05
    # Reconciliation deltas
    price_mismatch: float = 0.10
    quantity_diff: float = 0.1
    total_mismatch: float = 0.50
    review_price_delta: float = 1.00
    missing_item_confidence: float = 0.6


@dataclass
class ReceiptsConfig:
    ocr: OCRConfig = field(default_factory=OCRConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)


def load_config(path: str | Path | None = None) -> ReceiptsConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    Credentials can be supplied via environment variables instead.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    ocr = raw.get("ocr", {})
    img = raw.get("image", {})
    thr = raw.get("thresholds", {})

    # Resolve credentials: config file → environment variable
    gv_cfg = ocr.get("google_vision", {})
    gpt_cfg = ocr.get("gpt_vision", {})
    claude_cfg = ocr.get("claude", {})
    gemini_cfg = ocr.get("gemini", {})

    defaults = ThresholdConfig()

    return ReceiptsConfig(
        ocr=OCRConfig(
            engines=list(ocr.get("engines", ["google_vision", "gpt_vision"])),
            timeout=float(ocr.get("timeout", 30.0)),
            max_workers=int(ocr.get("max_workers", 2)),
            google_vision=GoogleVisionConfig(
                api_key=gv_cfg.get("api_key", "")
                or os.environ.get("GOOGLE_CLOUD_API_KEY", ""),
                project_id=gv_cfg.get("project_id", "")
                or os.environ.get("GOOGLE_CLOUD_PROJECT_ID", ""),
                credentials_path=gv_cfg.get("credentials_path", "")
                or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", ""),
            ),
            gpt_vision=GPTVisionConfig(
                api_key=gpt_cfg.get("api_key", "")
                or os.environ.get("OPENAI_API_KEY", ""),
                model=gpt_cfg.get("model", "gpt-4o"),
            ),
            claude=ClaudeOCRConfig(
                api_key=claude_cfg.get("api_key", "")
                or os.environ.get("ANTHROPIC_API_KEY", ""),
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiOCRConfig(
                api_key=gemini_cfg.get("api_key", "")
                or os.environ.get("GEMINI_API_KEY", ""),
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        image=ImageConfig(
            min_width=img.get("min_width", 800),
            min_brightness=img.get("min_brightness", 100.0),
            target_width=img.get("target_width", 1600),
            max_variants=img.get("max_variants", 3),
        ),
        thresholds=ThresholdConfig(
            **{
                name: float(thr.get(name, getattr(defaults, name)))
                for name in (
                    "total_tolerance_pct",
                    "multiline_tolerance",
                    "price_mismatch",
                    "quantity_diff",
                    "total_mismatch",
                    "review_price_delta",
                    "missing_item_confidence",
                )
            }
        ),
    )
