"""Python source collaborators built on the standard library ast module."""

import ast
import logging
from pathlib import Path

import aiofiles

from code_reference_optimizer.exceptions import ValidationError
from code_reference_optimizer.models.context import ExtractedContext
from code_reference_optimizer.parsers.base import ImportAnalyzer, ParsedSource, SourceParser

logger = logging.getLogger(__name__)

PYTHON_SUFFIXES = (".py", ".pyi")

_Definition = ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef | ast.Assign | ast.AnnAssign


def _is_python(path: str) -> bool:
    return path.endswith(PYTHON_SUFFIXES)


def _segment(lines: list[str], node: ast.stmt) -> str:
    """Source lines of a statement, decorators included."""
    start = node.lineno
    for decorator in getattr(node, "decorator_list", []):
        start = min(start, decorator.lineno)
    return "\n".join(lines[start - 1 : node.end_lineno])


def _defined_names(node: ast.stmt) -> list[str]:
    if isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef):
        return [node.name]
    if isinstance(node, ast.Assign):
        return [t.id for t in node.targets if isinstance(t, ast.Name)]
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        return [node.target.id]
    return []


def _bound_name(alias: ast.alias, from_import: bool) -> str:
    if alias.asname:
        return alias.asname
    return alias.name if from_import else alias.name.split(".")[0]


async def _read_source(path: str) -> str:
    async with aiofiles.open(Path(path), encoding="utf-8") as f:
        return await f.read()


class PythonSourceParser(SourceParser):
    """Top-level symbol extraction for Python files.

    Files without a Python suffix are treated as opaque text: their whole
    content is the context and they expose no symbols.
    """

    def __init__(self, max_file_size: int = 1_000_000) -> None:
        """Initialize parser.

        Args:
            max_file_size: Largest file accepted by parse_file, in bytes
        """
        self.max_file_size = max_file_size

    async def parse_file(self, path: str) -> ParsedSource:
        """Read and parse a file.

        Raises:
            ValidationError: If the file is too large or not valid Python
            OSError: If the file cannot be read
        """
        size = Path(path).stat().st_size
        if size > self.max_file_size:
            raise ValidationError(
                f"File {path} is {size} bytes, exceeding the {self.max_file_size} byte limit"
            )
        return await self.parse_content(await _read_source(path), path)

    async def parse_content(self, content: str, path: str) -> ParsedSource:
        """Parse content as the file at path.

        Raises:
            ValidationError: If a Python file has a syntax error
        """
        if not _is_python(path):
            return ParsedSource(path=path, source=content)

        try:
            tree = ast.parse(content, filename=path)
        except SyntaxError as e:
            raise ValidationError(f"Cannot parse {path}: {e.msg} (line {e.lineno})") from e
        return ParsedSource(path=path, source=content, tree=tree)

    async def extract_context(
        self, parsed: ParsedSource, target_symbols: list[str] | None = None
    ) -> ExtractedContext:
        """Extract top-level definitions.

        Only the requested definitions are included in the code; other
        top-level or imported names they reference are reported as
        dependencies.
        """
        if parsed.tree is None:
            return ExtractedContext(code=parsed.source)

        lines = parsed.source.split("\n")
        module: ast.Module = parsed.tree
        definitions: dict[str, _Definition] = {}
        imported: set[str] = set()
        imports: list[str] = []
        exports: list[str] | None = None

        for node in module.body:
            if isinstance(node, ast.Import | ast.ImportFrom):
                imports.append(_segment(lines, node))
                from_import = isinstance(node, ast.ImportFrom)
                imported.update(_bound_name(a, from_import) for a in node.names)
                continue
            for name in _defined_names(node):
                definitions[name] = node  # type: ignore[assignment]
                if name == "__all__" and isinstance(node, ast.Assign):
                    try:
                        exports = [str(n) for n in ast.literal_eval(node.value)]
                    except (ValueError, TypeError):
                        logger.debug(f"Non-literal __all__ in {parsed.path}")

        if target_symbols:
            selected = [name for name in target_symbols if name in definitions]
        else:
            selected = [name for name in definitions if name != "__all__"]

        nodes: list[_Definition] = []
        for name in selected:
            if definitions[name] not in nodes:
                nodes.append(definitions[name])
        nodes.sort(key=lambda n: n.lineno)

        dependencies: list[str] = []
        known = set(definitions) | imported
        for node in nodes:
            for child in ast.walk(node):
                if (
                    isinstance(child, ast.Name)
                    and child.id in known
                    and child.id not in selected
                    and child.id not in dependencies
                ):
                    dependencies.append(child.id)

        if exports is None:
            exports = [name for name in definitions if not name.startswith("_")]

        return ExtractedContext(
            code="\n\n".join(_segment(lines, node) for node in nodes),
            symbols=selected,
            dependencies=dependencies,
            imports=imports,
            exports=exports,
        )


class PythonImportAnalyzer(ImportAnalyzer):
    """Import statement analysis for Python files.

    Parsed imports are cached per path and reused only while the file's
    modification time and size are unchanged. The least recently loaded
    path is dropped once max_cached_files is reached.
    """

    def __init__(self, max_cached_files: int = 256) -> None:
        """Initialize import analyzer.

        Args:
            max_cached_files: Number of files whose parsed imports are kept
        """
        self.max_cached_files = max_cached_files
        # path -> ((st_mtime_ns, st_size), import nodes, raw statements)
        self._cache: dict[
            str, tuple[tuple[int, int], list[ast.Import | ast.ImportFrom], list[str]]
        ] = {}

    async def extract_imports(self, path: str) -> list[str]:
        """Get every top-level import statement in a file.

        Unreadable or unparsable files are logged and yield no imports.
        """
        _, raw = await self._load(path)
        return list(raw)

    async def get_minimal_imports(self, path: str, used_symbols: list[str]) -> list[str]:
        """Trim each import statement to the names in used_symbols."""
        if not used_symbols:
            return []

        nodes, raws = await self._load(path)
        used = set(used_symbols)
        minimal: list[str] = []

        for node, raw in zip(nodes, raws):
            from_import = isinstance(node, ast.ImportFrom)
            kept = [a for a in node.names if _bound_name(a, from_import) in used]
            if not kept:
                continue
            if len(kept) == len(node.names):
                statement = raw
            else:
                statement = ast.unparse(
                    ast.ImportFrom(module=node.module, names=kept, level=node.level)
                    if isinstance(node, ast.ImportFrom)
                    else ast.Import(names=kept)
                )
            if statement not in minimal:
                minimal.append(statement)

        return minimal

    def clear_cache(self) -> None:
        """Forget parsed imports."""
        self._cache.clear()

    async def _load(self, path: str) -> tuple[list[ast.Import | ast.ImportFrom], list[str]]:
        nodes: list[ast.Import | ast.ImportFrom] = []
        raw: list[str] = []
        try:
            stat = Path(path).stat()
            signature = (stat.st_mtime_ns, stat.st_size)
            cached = self._cache.get(path)
            if cached is not None and cached[0] == signature:
                return cached[1], cached[2]

            source = await _read_source(path)
            tree = ast.parse(source, filename=path) if _is_python(path) else None
        except (OSError, UnicodeDecodeError, SyntaxError) as e:
            logger.warning(f"Failed to extract imports from {path}: {e}")
            self._cache.pop(path, None)
            return nodes, raw

        if tree is not None:
            lines = source.split("\n")
            for node in tree.body:
                if isinstance(node, ast.Import | ast.ImportFrom):
                    nodes.append(node)
                    raw.append(_segment(lines, node))

        self._cache.pop(path, None)
        if len(self._cache) >= self.max_cached_files:
            del self._cache[next(iter(self._cache))]
        self._cache[path] = (signature, nodes, raw)
        return nodes, raw
