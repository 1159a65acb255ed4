"""Code context and cache bookkeeping models."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExtractedContext(BaseModel):
    """Raw extraction result produced by a source parser."""

    code: str = ""
    symbols: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)


class CodeContext(BaseModel):
    """Minimal code context for a file, as stored in the relevance cache."""

    file_path: str
    extracted_code: str
    imports: list[str] = Field(default_factory=list)
    symbols: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    token_count: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=_utcnow)
    relevance_score: float = Field(default=1.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def derive_token_count(self) -> "CodeContext":
        """Estimate token_count from the content when it is not given."""
        if "token_count" not in self.model_fields_set:
            self.token_count = self.count_tokens(self.extracted_code, self.imports)
        return self

    @classmethod
    def build(
        cls,
        file_path: str,
        extracted_code: str,
        imports: list[str] | None = None,
        ratio: int = 4,
        **kwargs,
    ) -> "CodeContext":
        """Create a context with its token count computed from the content."""
        imports = list(imports or [])
        return cls(
            file_path=file_path,
            extracted_code=extracted_code,
            imports=imports,
            token_count=cls.count_tokens(extracted_code, imports, ratio),
            **kwargs,
        )

    @staticmethod
    def count_tokens(extracted_code: str, imports: list[str], ratio: int = 4) -> int:
        """Estimate tokens for code plus newline-joined imports."""
        return math.ceil(len(extracted_code + "\n".join(imports)) / ratio)

    def with_content(
        self,
        extracted_code: str | None = None,
        imports: list[str] | None = None,
        ratio: int = 4,
    ) -> "CodeContext":
        """Return a copy with new code/imports and a recomputed token count.

        The timestamp and relevance score are carried over unchanged.
        """
        code = self.extracted_code if extracted_code is None else extracted_code
        imps = list(self.imports if imports is None else imports)
        return self.model_copy(
            update={
                "extracted_code": code,
                "imports": imps,
                "token_count": self.count_tokens(code, imps, ratio),
            }
        )


@dataclass
class CacheEntry:
    """Cache entry with access bookkeeping."""

    key: str
    context: CodeContext
    size: int
    access_count: int
    last_accessed: datetime


@dataclass
class CacheStats:
    """Cache statistics."""

    total_entries: int = 0
    total_size: int = 0
    hit_rate: float = 0.0
    miss_rate: float = 0.0
    eviction_count: int = 0
    hit_count: int = 0
    miss_count: int = 0


@dataclass
class RankedEntry:
    """Cache entry with its composite value score."""

    key: str
    context: CodeContext
    score: float


@dataclass
class OptimizeResult:
    """Outcome of a cache optimisation pass."""

    removed_count: int
    space_freed: int
    new_hit_rate: float


@dataclass
class CacheReport:
    """Cache statistics with the top-ranked entries."""

    stats: CacheStats
    entries: list[RankedEntry]


@dataclass
class ImportOptimization:
    """Minimal imports for a file and what they save."""

    optimized_imports: list[str]
    removed_imports: list[str]
    token_savings: int
