"""Source scanning and pattern extraction.

Walks a project tree, parses each source file into a syntax tree, runs the
registered matchers over it and aggregates the results into a
``PatternCatalog``.
"""

from .catalog import SCHEMA_VERSION, PatternCatalog
from .extractor import ExtractionResult, PatternExtractor
from .matchers import MatchContext, Matcher, MatcherRegistry, default_registry
from .models import (
    CatalogReport,
    Dialect,
    FieldSpec,
    Pattern,
    PatternKind,
    ScanWarning,
    SourceFile,
    SourceLocation,
)
from .walker import SourceScanner

__all__ = [
    "SCHEMA_VERSION",
    "CatalogReport",
    "Dialect",
    "ExtractionResult",
    "FieldSpec",
    "MatchContext",
    "Matcher",
    "MatcherRegistry",
    "Pattern",
    "PatternCatalog",
    "PatternExtractor",
    "PatternKind",
    "ScanWarning",
    "SourceFile",
    "SourceLocation",
    "SourceScanner",
    "default_registry",
]
