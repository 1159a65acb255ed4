"""Source parsing collaborators."""

from code_reference_optimizer.parsers.base import ImportAnalyzer, ParsedSource, SourceParser
from code_reference_optimizer.parsers.python import PythonImportAnalyzer, PythonSourceParser

__all__ = [
    "SourceParser",
    "ImportAnalyzer",
    "ParsedSource",
    "PythonSourceParser",
    "PythonImportAnalyzer",
]
