"""Abstract base classes for source parsing collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from code_reference_optimizer.models.context import ExtractedContext


@dataclass
class ParsedSource:
    """Parsed file: original text plus a parser-specific tree (None if opaque)."""

    path: str
    source: str
    tree: Any | None = None


class SourceParser(ABC):
    """Abstract base class for source parsers."""

    @abstractmethod
    async def parse_file(self, path: str) -> ParsedSource:
        """Read and parse a file.

        Args:
            path: File path

        Returns:
            Parsed source
        """
        pass

    @abstractmethod
    async def parse_content(self, content: str, path: str) -> ParsedSource:
        """Parse in-memory content as if it were the file at path.

        Args:
            content: Source text
            path: Path used to pick the language

        Returns:
            Parsed source
        """
        pass

    @abstractmethod
    async def extract_context(
        self, parsed: ParsedSource, target_symbols: list[str] | None = None
    ) -> ExtractedContext:
        """Extract the code for target symbols (all top-level symbols if None).

        Args:
            parsed: Parsed source
            target_symbols: Symbols to extract

        Returns:
            Extracted code, symbols, dependencies, imports and exports
        """
        pass


class ImportAnalyzer(ABC):
    """Abstract base class for import analyzers."""

    @abstractmethod
    async def extract_imports(self, path: str) -> list[str]:
        """Get every import statement in a file, in source order.

        Args:
            path: File path

        Returns:
            Raw import statements
        """
        pass

    @abstractmethod
    async def get_minimal_imports(self, path: str, used_symbols: list[str]) -> list[str]:
        """Get the import statements needed for the used symbols.

        Args:
            path: File path
            used_symbols: Names the extracted code refers to

        Returns:
            Import statements trimmed to the used names
        """
        pass

    def clear_cache(self) -> None:
        """Drop any per-file state kept between calls."""
        pass
