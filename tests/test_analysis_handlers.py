"""分析工具 handler 测试。"""

import pytest

from agent_engine.tools.analysis_handlers import AnalysisToolHandlers, extract_imports
from agent_engine.tools.context import WorkspaceContext


class TestExtractImports:

    def test_es_modules(self):
        source = (
            "import React from 'react'\n"
            "import { a, b } from \"./local\"\n"
            "import './side-effect.css'\n"
            "const fs = require('fs')\n"
            "const lazy = import('./lazy')\n"
        )
        imports = extract_imports(source)
        assert set(imports) == {"react", "./local", "./side-effect.css", "fs", "./lazy"}

    def test_python(self):
        source = "import os\nimport sys, json\nfrom pathlib import Path\nfrom .models import tool\n"
        imports = extract_imports(source)
        assert {"os", "sys", "json", "pathlib"} <= set(imports)

    def test_rust(self):
        assert extract_imports("use std::collections::HashMap;\nuse serde::Deserialize;\n") == [
            "std::collections::HashMap",
            "serde::Deserialize",
        ]

    def test_duplicates_removed(self):
        assert extract_imports("import os\nimport os\n") == ["os"]


class TestAnalysisHandlers:

    @pytest.mark.asyncio
    async def test_analyze_imports(self, tmp_path):
        (tmp_path / "mod.ts").write_text(
            "import { x } from './x'\nexport function run() {}\nexport const VALUE = 1\nexport default class App {}\n"
        )
        handlers = AnalysisToolHandlers(WorkspaceContext(str(tmp_path)))
        result = await handlers.analyze_imports({"path": "mod.ts"})
        assert result.success is True
        assert result.data["imports"] == ["./x"]
        assert result.data["exports"] == ["run", "VALUE", "App"]
        assert result.data["count"] == 1

    @pytest.mark.asyncio
    async def test_analyze_missing_file(self, tmp_path):
        handlers = AnalysisToolHandlers(WorkspaceContext(str(tmp_path)))
        result = await handlers.analyze_imports({"path": "nope.ts"})
        assert result.error == "File not found: nope.ts"

    @pytest.mark.asyncio
    async def test_diagnostics_empty(self, tmp_path):
        handlers = AnalysisToolHandlers(WorkspaceContext(str(tmp_path)))
        result = await handlers.get_diagnostics({"file": "a.ts"})
        assert result.success is True
        assert result.data["diagnostics"] == []
