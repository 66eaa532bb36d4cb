"""Receipt recognition module for Prizma."""

from .config import ReceiptsConfig, ThresholdConfig, load_config
from .formatting import BGN_FORMAT, EUR_FORMAT, NumberFormat, format_number, parse_number
from .models import (
    Discrepancy,
    ExtractedItem,
    PipelineResult,
    QualityIssue,
    QualityReport,
    ReceiptExtraction,
    ReconciliationResult,
    TotalValidationResult,
)
from .ocr import OCREngine, OCRText, create_engine
from .parser import ReceiptParser
from .pipeline import PipelineError, ReceiptPipeline, process_receipt_image
from .products import ProductKnowledgeBase
from .reconciliation import reconcile, single_source
from .stores import StoreFormat, StoreRegistry
from .validation import assess_quality, processing_stats, validate_total

__all__ = [
    "process_receipt_image",
    "ReceiptPipeline",
    "PipelineError",
    "PipelineResult",
    "QualityReport",
    "ReceiptParser",
    "ReceiptExtraction",
    "ExtractedItem",
    "QualityIssue",
    "TotalValidationResult",
    "ReconciliationResult",
    "Discrepancy",
    "reconcile",
    "single_source",
    "validate_total",
    "assess_quality",
    "processing_stats",
    "OCREngine",
    "OCRText",
    "create_engine",
    "StoreFormat",
    "StoreRegistry",
    "ProductKnowledgeBase",
    "NumberFormat",
    "BGN_FORMAT",
    "EUR_FORMAT",
    "parse_number",
    "format_number",
    "ReceiptsConfig",
    "ThresholdConfig",
    "load_config",
]
