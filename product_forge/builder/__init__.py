"""Assemble product documents, staging trees and checksums from projects."""

from .models import BuildContext, BuildResult, DerivedPhraseGroup, DerivedPhrases
from .orchestrator import ProductBuilder
from .processors import SECTION_PROCESSORS

__all__ = [
    "SECTION_PROCESSORS",
    "BuildContext",
    "BuildResult",
    "DerivedPhraseGroup",
    "DerivedPhrases",
    "ProductBuilder",
]
