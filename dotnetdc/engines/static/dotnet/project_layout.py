"""
Filesystem layout helpers for decompiled output.

Naming of per-namespace files, the synthetic project skeleton (csproj and
manifest), incremental writes and the file tree summary returned to clients.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from dotnetdc.engines.static.dotnet.source_splitter import GLOBAL_NAMESPACE
from dotnetdc.utils.config import PACKAGE_VERSION, SERVER_NAME

logger = logging.getLogger(__name__)

CSPROJ_NAME = "Decompiled.csproj"
MANIFEST_NAME = "Decompiled.manifest.json"

CSPROJ_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
    <ImplicitUsings>enable</ImplicitUsings>
    <Nullable>enable</Nullable>
  </PropertyGroup>
  <ItemGroup>
    <Compile Include="**/*.cs" />
  </ItemGroup>
</Project>
"""


def namespace_file_name(namespace: str) -> str:
    """File name for a per-namespace unit: dots become underscores."""
    if namespace == GLOBAL_NAMESPACE:
        return "global.cs"
    return f"{namespace.replace('.', '_')}.cs"


def namespace_directory(root: Path, namespace: str) -> Path:
    """Directory holding a namespace's types in the project layout."""
    if namespace == GLOBAL_NAMESPACE:
        return root / "global"
    return root.joinpath(*namespace.split("."))


def is_selected(namespace: str, wanted: list[str]) -> bool:
    """True when namespace equals a wanted name or is nested below one."""
    return any(namespace == w or namespace.startswith(w + ".") for w in wanted)


def write_file_if_changed(
    file_path: Path,
    content: str,
    written: list[str] | None = None,
    root_dir: Path | None = None
) -> bool:
    """
    Write content unless the file already holds exactly that content.

    Args:
        file_path: Target file
        content: Text to write
        written: Optional collector receiving the path of each file written
        root_dir: When given, paths are collected relative to it

    Returns:
        True if the file was written
    """
    if file_path.is_file():
        if file_path.read_text(encoding="utf-8", errors="replace") == content:
            return False

    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content, encoding="utf-8")

    if written is not None:
        rel = file_path.relative_to(root_dir) if root_dir else file_path
        written.append(rel.as_posix())
    return True


def build_file_tree(root_dir: str | Path, relative_files: list[str]) -> dict:
    """
    Build a nested tree of {name, type, children} nodes from relative paths.

    A final path segment with an extension is a file; everything else is a
    directory.
    """
    root = {"name": Path(root_dir).name or ".", "type": "directory", "children": []}
    index = {"": root}

    for rel in relative_files:
        parts = [p for p in rel.replace("\\", "/").split("/") if p]
        current_path = ""
        node = root
        for i, part in enumerate(parts):
            next_path = f"{current_path}/{part}" if current_path else part
            is_file = i == len(parts) - 1 and bool(PurePosixPath(part).suffix)
            if next_path not in index:
                child = {"name": part, "type": "file" if is_file else "directory"}
                if not is_file:
                    child["children"] = []
                node["children"].append(child)
                index[next_path] = child
            node = index[next_path]
            current_path = next_path

    return root


def build_manifest(
    assembly_path: Path,
    options: dict,
    files: list[str],
    type_mappings: list[dict],
    namespaces: list[str]
) -> dict:
    """Describe a project-structure run for Decompiled.manifest.json."""
    stat = assembly_path.stat()
    return {
        "tool": {"name": SERVER_NAME, "version": PACKAGE_VERSION},
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "assembly": {
            "path": str(assembly_path),
            "mtimeMs": int(stat.st_mtime * 1000),
            "size": stat.st_size,
        },
        "options": options,
        "files": sorted(files),
        "typeMappings": type_mappings,
        "namespaces": namespaces,
    }
