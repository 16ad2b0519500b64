"""Read-only tool handlers: files, directories, search and project overview."""

import fnmatch
import json
import os
import re
import shlex
import tomllib
from typing import Any, Dict, List, Optional, Tuple

from ..models.tool import ToolHandler, ToolResult
from ..utils.logging import get_logger
from .context import WorkspaceContext
from .process import run_shell

logger = get_logger("tools.read")

TRUNCATION_MARKER = "\n\n[... truncated ...]"

# 遍历目录树时跳过的依赖、构建和缓存目录
IGNORED_DIRECTORIES = frozenset({
    "node_modules", ".git", "dist", "build", ".next", "out", "target",
    ".cache", ".turbo", "coverage", ".nyc_output", "vendor",
    "bower_components", ".pnpm", "__pycache__", ".venv", "venv",
})

ENTRY_POINT_CANDIDATES = [
    "src/main.ts", "src/index.ts", "src/main.tsx", "src/App.tsx",
    "src/lib.rs", "src/main.rs", "index.js", "main.py", "app.py",
    "src/main.py", "__main__.py",
]

README_CANDIDATES = ["README.md", "README.rst", "README.txt", "README", "readme.md"]

PROJECT_SECTIONS = ["structure", "dependencies", "git", "readme", "entry_points"]

MAX_SEARCH_RESULTS = 50
MAX_TREE_DEPTH = 5
DEFAULT_TREE_DEPTH = 3
MAX_SYMBOL_RESULTS = 100


def truncate(text: str, limit: int) -> Tuple[str, bool]:
    """按字符数截断，超出时追加截断标记"""
    if limit and len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER, True
    return text, False


def detect_project_type(root: str) -> str:
    """根据标志文件判断项目类型"""
    if os.path.isfile(os.path.join(root, "package.json")):
        return "npm"
    if os.path.isfile(os.path.join(root, "Cargo.toml")):
        return "cargo"
    for marker in ("pyproject.toml", "setup.py", "setup.cfg"):
        if os.path.isfile(os.path.join(root, marker)):
            return "python"
    return "unknown"


def iter_source_files(root: str, file_pattern: Optional[str] = None):
    """遍历工作区文件，跳过忽略目录和隐藏目录"""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in IGNORED_DIRECTORIES and not d.startswith(".")
        )
        for filename in sorted(filenames):
            if file_pattern and not fnmatch.fnmatch(filename, file_pattern):
                continue
            yield os.path.join(dirpath, filename)


class ReadToolHandlers:
    """
    只读工具集合

    所有 handler 接收参数字典并返回 ToolResult，失败通过 success=False 表达。
    """

    def __init__(self, context: WorkspaceContext):
        self._context = context

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "get_workspace_info": self.get_workspace_info,
            "read_file": self.read_file,
            "list_dir": self.list_dir,
            "read_directory_tree": self.read_directory_tree,
            "search_code": self.search_code,
            "get_project_context": self.get_project_context,
            "fs_batch_read": self.fs_batch_read,
            "find_symbols": self.find_symbols,
        }

    # ------------------------------------------------------------------

    async def get_workspace_info(self, args: Dict[str, Any]) -> ToolResult:
        root = self._context.root
        return ToolResult.ok({
            "name": os.path.basename(root.rstrip(os.sep)) or root,
            "path": root,
            "project_type": detect_project_type(root),
        })

    def _read_text(self, path: str, encoding: str = "utf-8") -> ToolResult:
        abs_path = self._context.resolve(path)
        if not os.path.exists(abs_path):
            return ToolResult.fail(f"File not found: {path}")
        if not os.path.isfile(abs_path):
            return ToolResult.fail(f"Path is not a file: {path}")
        try:
            with open(abs_path, "r", encoding=encoding, errors="replace") as f:
                content = f.read()
        except (OSError, LookupError) as e:
            return ToolResult.fail(f"Failed to read file: {e}")
        return ToolResult.ok({"path": path, "content": content})

    async def read_file(self, args: Dict[str, Any]) -> ToolResult:
        """
        读取文件

        Args:
            args: path（必填）, encoding, max_lines

        Returns:
            data 为 {path, content, size, lines, truncated}
        """
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")

        result = self._read_text(path, args.get("encoding") or "utf-8")
        if not result.success:
            return result

        content = result.data["content"]
        max_lines = args.get("max_lines")
        truncated = False
        if max_lines:
            lines = content.splitlines(keepends=True)
            if len(lines) > int(max_lines):
                content = "".join(lines[:int(max_lines)])
                truncated = True

        content, cut = truncate(content, self._context.settings.max_file_chars)
        return ToolResult.ok({
            "path": path,
            "content": content,
            "size": len(result.data["content"]),
            "lines": result.data["content"].count("\n") + 1 if result.data["content"] else 0,
            "truncated": truncated or cut,
        })

    async def list_dir(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path") or "."
        abs_path = self._context.resolve(path)
        if not os.path.exists(abs_path):
            return ToolResult.fail(f"Directory not found: {path}")
        if not os.path.isdir(abs_path):
            return ToolResult.fail(f"Path is not a directory: {path}")

        entries = []
        try:
            names = sorted(os.listdir(abs_path))
        except OSError as e:
            return ToolResult.fail(f"Failed to list directory: {e}")
        for name in names:
            full = os.path.join(abs_path, name)
            is_dir = os.path.isdir(full)
            entries.append({
                "name": name,
                "path": os.path.join(path, name) if path != "." else name,
                "is_directory": is_dir,
                "size": 0 if is_dir else os.path.getsize(full),
            })
        return ToolResult.ok({"path": path, "entries": entries, "count": len(entries)})

    async def read_directory_tree(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path") or "."
        abs_path = self._context.resolve(path)
        if not os.path.isdir(abs_path):
            return ToolResult.fail(f"Directory not found: {path}")

        try:
            depth = int(args.get("max_depth") or DEFAULT_TREE_DEPTH)
        except (TypeError, ValueError):
            depth = DEFAULT_TREE_DEPTH
        depth = max(1, min(depth, MAX_TREE_DEPTH))

        def walk(current: str, rel: str, level: int) -> Dict[str, Any]:
            node: Dict[str, Any] = {
                "name": os.path.basename(current.rstrip(os.sep)) or current,
                "path": rel,
                "type": "directory",
                "children": [],
            }
            if level >= depth:
                return node
            try:
                names = sorted(os.listdir(current))
            except OSError:
                return node
            for name in names:
                if name in IGNORED_DIRECTORIES:
                    continue
                full = os.path.join(current, name)
                child_rel = name if rel == "." else os.path.join(rel, name)
                if os.path.isdir(full):
                    node["children"].append(walk(full, child_rel, level + 1))
                else:
                    node["children"].append({"name": name, "path": child_rel, "type": "file"})
            return node

        return ToolResult.ok({"tree": walk(abs_path, path, 0), "max_depth": depth})

    async def search_code(self, args: Dict[str, Any]) -> ToolResult:
        """
        用 grep 搜索工作区

        没有匹配或 grep 执行失败时返回空结果（success=True）。
        """
        query = args.get("query")
        if not query:
            return ToolResult.fail("Missing required parameter: query")
        try:
            max_results = int(args.get("max_results") or MAX_SEARCH_RESULTS)
        except (TypeError, ValueError):
            max_results = MAX_SEARCH_RESULTS

        parts = ["grep", "-rnI", "-E" if args.get("is_regex") else "-F"]
        if args.get("file_pattern"):
            parts.append(f"--include={shlex.quote(args['file_pattern'])}")
        parts.extend(f"--exclude-dir={shlex.quote(d)}" for d in sorted(IGNORED_DIRECTORIES))
        parts.extend(["-e", shlex.quote(query), "."])

        try:
            output = await run_shell(" ".join(parts), cwd=self._context.root, timeout=25.0)
        except OSError as e:
            logger.warning("grep failed to start: %s", e)
            return ToolResult.ok({"results": [], "total": 0, "truncated": False})

        results: List[Dict[str, Any]] = []
        total = 0
        for line in output.stdout.splitlines():
            match = re.match(r"^(.*?):(\d+):(.*)$", line)
            if not match:
                continue
            total += 1
            if len(results) < max_results:
                file_path = match.group(1)
                if file_path.startswith("./"):
                    file_path = file_path[2:]
                results.append({
                    "file": file_path,
                    "line": int(match.group(2)),
                    "content": match.group(3).strip(),
                })
        return ToolResult.ok({"results": results, "total": total, "truncated": total > len(results)})

    # ------------------------------------------------------------------
    # project overview
    # ------------------------------------------------------------------

    async def get_project_context(self, args: Dict[str, Any]) -> ToolResult:
        root = self._context.root
        include = args.get("include") or PROJECT_SECTIONS
        concise = (args.get("response_format") or "concise") != "detailed"

        context: Dict[str, Any] = {
            "workspace": {"path": root, "name": os.path.basename(root.rstrip(os.sep))},
        }
        if "structure" in include:
            context["structure"] = self._project_structure(root)
        if "dependencies" in include:
            context["dependencies"] = self._project_dependencies(root, concise)
        if "git" in include:
            context["git"] = await self._git_summary(root, concise)
        if "readme" in include:
            context["readme"] = self._readme(root, concise)
        if "entry_points" in include:
            context["entry_points"] = [
                p for p in ENTRY_POINT_CANDIDATES if os.path.isfile(os.path.join(root, p))
            ]
        return ToolResult.ok(context)

    @staticmethod
    def _project_structure(root: str, max_dirs: int = 20, max_files: int = 30) -> Dict[str, Any]:
        directories: List[str] = []
        files: List[str] = []
        for name in sorted(os.listdir(root)):
            if name.startswith(".") or name in IGNORED_DIRECTORIES:
                continue
            full = os.path.join(root, name)
            if os.path.isdir(full):
                directories.append(name + "/")
                try:
                    children = sorted(os.listdir(full))
                except OSError:
                    children = []
                for child in children:
                    if child.startswith(".") or child in IGNORED_DIRECTORIES:
                        continue
                    if os.path.isdir(os.path.join(full, child)):
                        directories.append(f"{name}/{child}/")
                    else:
                        files.append(f"{name}/{child}")
            else:
                files.append(name)
        return {
            "directories": directories[:max_dirs],
            "files": files[:max_files],
            "truncated": len(directories) > max_dirs or len(files) > max_files,
        }

    @staticmethod
    def _project_dependencies(root: str, concise: bool) -> Optional[Dict[str, Any]]:
        package_json = os.path.join(root, "package.json")
        if os.path.isfile(package_json):
            try:
                with open(package_json, "r", encoding="utf-8") as f:
                    pkg = json.load(f)
            except (OSError, ValueError) as e:
                return {"type": "npm", "error": f"Failed to parse package.json: {e}"}
            deps = pkg.get("dependencies") or {}
            dev_deps = pkg.get("devDependencies") or {}
            if concise:
                return {
                    "type": "npm",
                    "name": pkg.get("name"),
                    "dependencies": sorted(deps),
                    "dev_dependencies": sorted(dev_deps),
                }
            return {
                "type": "npm",
                "name": pkg.get("name"),
                "version": pkg.get("version"),
                "scripts": pkg.get("scripts") or {},
                "dependencies": deps,
                "dev_dependencies": dev_deps,
            }

        cargo_toml = os.path.join(root, "Cargo.toml")
        if os.path.isfile(cargo_toml):
            try:
                manifest = _load_toml(cargo_toml)
            except (OSError, tomllib.TOMLDecodeError) as e:
                return {"type": "cargo", "error": f"Failed to parse Cargo.toml: {e}"}
            package = manifest.get("package") or {}
            deps = manifest.get("dependencies") or {}
            dev_deps = manifest.get("dev-dependencies") or {}
            if concise:
                return {"type": "cargo", "name": package.get("name"), "dependencies": sorted(deps)}
            return {
                "type": "cargo",
                "name": package.get("name"),
                "version": package.get("version"),
                "dependencies": deps,
                "dev_dependencies": dev_deps,
            }

        pyproject = os.path.join(root, "pyproject.toml")
        if os.path.isfile(pyproject):
            try:
                manifest = _load_toml(pyproject)
            except (OSError, tomllib.TOMLDecodeError) as e:
                return {"type": "python", "error": f"Failed to parse pyproject.toml: {e}"}
            project = manifest.get("project") or {}
            deps = list(project.get("dependencies") or [])
            # poetry 项目把依赖写成表，python 本身不算依赖
            poetry = ((manifest.get("tool") or {}).get("poetry") or {}).get("dependencies") or {}
            deps.extend(name for name in poetry if name != "python")
            result: Dict[str, Any] = {"type": "python", "dependencies": deps}
            if not concise:
                result["name"] = project.get("name") or ((manifest.get("tool") or {}).get("poetry") or {}).get("name")
                result["optional_dependencies"] = project.get("optional-dependencies") or {}
            return result

        return None

    @staticmethod
    async def _git_summary(root: str, concise: bool) -> Dict[str, Any]:
        try:
            branch = await run_shell("git rev-parse --abbrev-ref HEAD", cwd=root, timeout=10.0)
            status = await run_shell("git status --porcelain", cwd=root, timeout=10.0)
        except OSError as e:
            return {"available": False, "error": str(e)}
        if branch.exit_code != 0:
            return {"available": False}
        files = [line for line in status.stdout.splitlines() if line.strip()]
        summary: Dict[str, Any] = {"available": True, "branch": branch.stdout.strip()}
        if concise:
            summary["modified_count"] = len(files)
        else:
            summary["files"] = files
        return summary

    def _readme(self, root: str, concise: bool) -> Optional[str]:
        for candidate in README_CANDIDATES:
            path = os.path.join(root, candidate)
            if os.path.isfile(path):
                with open(path, "r", encoding="utf-8", errors="replace") as f:
                    content = f.read()
                limit = 500 if concise else self._context.settings.max_file_chars
                return truncate(content, limit)[0]
        return None

    # ------------------------------------------------------------------

    async def fs_batch_read(self, args: Dict[str, Any]) -> ToolResult:
        """批量读取文件；单个文件失败不影响整体"""
        paths = args.get("paths")
        if not paths or not isinstance(paths, list):
            return ToolResult.fail("Missing required parameter: paths")
        concise = (args.get("response_format") or "concise") != "detailed"
        limit = int(args.get("max_chars_per_file") or 50000)

        files = []
        successful = 0
        for path in paths:
            result = self._read_text(path)
            if not result.success:
                files.append({"path": path, "success": False, "error": result.error})
                continue
            successful += 1
            content = result.data["content"]
            if concise:
                files.append({
                    "path": path,
                    "success": True,
                    "line_count": len(content.splitlines()),
                    "char_count": len(content),
                    "preview": "\n".join(content.splitlines()[:5]),
                })
            else:
                text, cut = truncate(content, limit)
                files.append({"path": path, "success": True, "content": text, "truncated": cut})

        return ToolResult.ok({
            "files": files,
            "summary": {
                "requested": len(paths),
                "successful": successful,
                "failed": len(paths) - successful,
            },
        })

    async def find_symbols(self, args: Dict[str, Any]) -> ToolResult:
        query = args.get("query")
        if not query:
            return ToolResult.fail("Missing required parameter: query")
        kind = args.get("kind") or "all"
        concise = (args.get("response_format") or "concise") != "detailed"

        patterns = _symbol_patterns(query, kind)
        seen = set()
        symbols: List[Dict[str, Any]] = []
        for file_path in iter_source_files(self._context.root, args.get("file_pattern")):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    lines = f.readlines()
            except (OSError, UnicodeDecodeError):
                continue
            for number, line in enumerate(lines, start=1):
                for symbol_kind, pattern in patterns:
                    if not pattern.search(line):
                        continue
                    rel = self._context.relative(file_path)
                    if (rel, number) in seen:
                        break
                    seen.add((rel, number))
                    entry = {"file": rel, "line": number, "kind": symbol_kind}
                    entry["content"] = line.strip()[:120] if concise else line.strip()
                    symbols.append(entry)
                    break
                if len(symbols) >= MAX_SYMBOL_RESULTS:
                    break
            if len(symbols) >= MAX_SYMBOL_RESULTS:
                break
        return ToolResult.ok({"symbols": symbols, "total": len(symbols)})


def _symbol_patterns(query: str, kind: str) -> List[tuple]:
    name = r"\w*" + re.escape(query) + r"\w*"
    function = re.compile(
        rf"(?:\bdef\s+{name}\s*\(|\bfunction\s*\*?\s*{name}\s*\(|\bfn\s+{name}\b|\bfunc\s+{name}\b"
        rf"|\b(?:const|let|var)\s+{name}\s*=\s*(?:async\s*)?(?:\(|function))"
    )
    class_ = re.compile(rf"\b(?:class|struct|enum)\s+{name}\b")
    interface = re.compile(rf"\b(?:interface|trait|type)\s+{name}\b")
    if kind == "function":
        return [("function", function)]
    if kind == "class":
        return [("class", class_)]
    if kind == "interface":
        return [("interface", interface)]
    return [
        ("function", function),
        ("class", class_),
        ("interface", interface),
        ("reference", re.compile(rf"\b{re.escape(query)}\b")),
    ]


def _load_toml(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)
