"""Tests for the Python source collaborators."""

import logging
from pathlib import Path

import pytest

from code_reference_optimizer.exceptions import ValidationError
from code_reference_optimizer.parsers.python import PythonImportAnalyzer, PythonSourceParser


@pytest.mark.asyncio
class TestPythonSourceParser:
    """Test symbol extraction."""

    async def test_extract_all_symbols(self, sample_file: Path):
        """Test extracting every top-level definition."""
        parser = PythonSourceParser()
        parsed = await parser.parse_file(str(sample_file))

        extracted = await parser.extract_context(parsed)

        assert extracted.symbols == ["DEFAULT_NAME", "helper", "Greeter", "_private"]
        assert extracted.imports == ["import os", "from typing import Any, Optional"]
        assert extracted.exports == ["helper", "Greeter"]
        assert "__all__" not in extracted.code
        assert extracted.code.startswith('DEFAULT_NAME = "world"')

    async def test_extract_target_symbol_with_dependencies(self, sample_file: Path):
        """Test that referenced names are reported as dependencies."""
        parser = PythonSourceParser()
        parsed = await parser.parse_file(str(sample_file))

        extracted = await parser.extract_context(parsed, ["Greeter"])

        assert extracted.symbols == ["Greeter"]
        assert extracted.code.startswith("class Greeter:")
        assert "def helper" not in extracted.code
        assert set(extracted.dependencies) == {"DEFAULT_NAME", "helper"}

    async def test_unknown_target_symbol(self, sample_file: Path):
        """Test that unknown symbols are ignored."""
        parser = PythonSourceParser()
        parsed = await parser.parse_file(str(sample_file))

        extracted = await parser.extract_context(parsed, ["missing"])

        assert extracted.symbols == []
        assert extracted.code == ""

    async def test_decorators_are_included(self):
        """Test that a definition's decorators are part of its code."""
        parser = PythonSourceParser()
        source = "import functools\n\n\n@functools.cache\ndef cached():\n    return 1\n"
        parsed = await parser.parse_content(source, "m.py")

        extracted = await parser.extract_context(parsed, ["cached"])

        assert extracted.code == "@functools.cache\ndef cached():\n    return 1"
        assert extracted.dependencies == ["functools"]

    async def test_syntax_error_raises_validation_error(self):
        """Test that invalid Python is reported as a validation error."""
        parser = PythonSourceParser()

        with pytest.raises(ValidationError):
            await parser.parse_content("def broken(:\n", "m.py")

    async def test_non_python_file_is_opaque(self):
        """Test that other files are returned whole."""
        parser = PythonSourceParser()
        parsed = await parser.parse_content("# Title\ntext", "README.md")

        extracted = await parser.extract_context(parsed)

        assert extracted.code == "# Title\ntext"
        assert extracted.symbols == []

    async def test_file_size_limit(self, sample_file: Path):
        """Test that oversized files are rejected."""
        parser = PythonSourceParser(max_file_size=10)

        with pytest.raises(ValidationError):
            await parser.parse_file(str(sample_file))

    async def test_missing_file_raises(self, tmp_path: Path):
        """Test reading a file that does not exist."""
        with pytest.raises(FileNotFoundError):
            await PythonSourceParser().parse_file(str(tmp_path / "missing.py"))


@pytest.mark.asyncio
class TestPythonImportAnalyzer:
    """Test import analysis."""

    async def test_extract_imports(self, sample_file: Path):
        """Test listing raw import statements."""
        analyzer = PythonImportAnalyzer()

        imports = await analyzer.extract_imports(str(sample_file))

        assert imports == ["import os", "from typing import Any, Optional"]

    async def test_minimal_imports_trim_names(self, sample_file: Path):
        """Test trimming a from-import to the used names."""
        analyzer = PythonImportAnalyzer()

        minimal = await analyzer.get_minimal_imports(str(sample_file), ["Any", "helper"])

        assert minimal == ["from typing import Any"]

    async def test_minimal_imports_keep_whole_statement(self, sample_file: Path):
        """Test that fully used statements are kept verbatim."""
        analyzer = PythonImportAnalyzer()

        minimal = await analyzer.get_minimal_imports(str(sample_file), ["os", "Any", "Optional"])

        assert minimal == ["import os", "from typing import Any, Optional"]

    async def test_minimal_imports_respect_aliases(self, tmp_path: Path):
        """Test matching on the bound name of aliased imports."""
        path = tmp_path / "m.py"
        path.write_text("import numpy as np\nimport os.path\nfrom . import sibling as sib, other\n")
        analyzer = PythonImportAnalyzer()

        minimal = await analyzer.get_minimal_imports(str(path), ["np", "os", "sib"])

        assert minimal == ["import numpy as np", "import os.path", "from . import sibling as sib"]

    async def test_no_used_symbols(self, sample_file: Path):
        """Test that nothing is needed when nothing is used."""
        analyzer = PythonImportAnalyzer()

        assert await analyzer.get_minimal_imports(str(sample_file), []) == []

    async def test_unreadable_file_yields_no_imports(self, tmp_path: Path, caplog):
        """Test that I/O failures are logged and produce an empty list."""
        analyzer = PythonImportAnalyzer()

        with caplog.at_level(logging.WARNING):
            imports = await analyzer.extract_imports(str(tmp_path / "missing.py"))

        assert imports == []
        assert "Failed to extract imports" in caplog.text

    async def test_unchanged_file_is_served_from_cache(self, tmp_path: Path):
        """Test that parsed imports are reused while the file is unchanged."""
        path = tmp_path / "m.py"
        path.write_text("import os\n")
        analyzer = PythonImportAnalyzer()

        await analyzer.extract_imports(str(path))
        entry = analyzer._cache[str(path)]
        await analyzer.get_minimal_imports(str(path), ["os"])

        assert analyzer._cache[str(path)] is entry

    async def test_rewritten_file_is_parsed_again(self, tmp_path: Path):
        """Test that a change on disk invalidates the cached imports."""
        path = tmp_path / "m.py"
        path.write_text("import os\n")
        analyzer = PythonImportAnalyzer()

        assert await analyzer.extract_imports(str(path)) == ["import os"]
        path.write_text("import os\nimport sys\n")

        assert await analyzer.extract_imports(str(path)) == ["import os", "import sys"]
        assert await analyzer.get_minimal_imports(str(path), ["sys"]) == ["import sys"]

    async def test_clear_cache(self, sample_file: Path):
        """Test forgetting parsed imports."""
        analyzer = PythonImportAnalyzer()
        await analyzer.extract_imports(str(sample_file))

        analyzer.clear_cache()

        assert analyzer._cache == {}

    async def test_cache_is_bounded(self, tmp_path: Path):
        """Test that the oldest file is dropped once the limit is reached."""
        analyzer = PythonImportAnalyzer(max_cached_files=2)
        paths = []
        for name in ("a", "b", "c"):
            path = tmp_path / f"{name}.py"
            path.write_text("import os\n")
            paths.append(str(path))
            await analyzer.extract_imports(str(path))

        assert list(analyzer._cache) == paths[1:]
