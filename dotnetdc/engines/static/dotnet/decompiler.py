"""
Decompilation service built on ILSpyRunner and the source reorganizer.

Each operation runs ilspycmd into a temporary (or caller supplied)
directory and turns the result into one of the presentation shapes: flat
text, a file listing, per-namespace files, or a synthetic project layout.
"""

import json
import logging
import tempfile
from pathlib import Path

from dotnetdc.engines.static.dotnet.ilspy_runner import (
    LISTING_EXTENSIONS,
    SOURCE_EXTENSIONS,
    ILSpyRunner,
    get_ilspy_runner,
)
from dotnetdc.engines.static.dotnet.project_layout import (
    CSPROJ_NAME,
    CSPROJ_TEMPLATE,
    MANIFEST_NAME,
    build_manifest,
    is_selected,
    namespace_directory,
    namespace_file_name,
    write_file_if_changed,
)
from dotnetdc.engines.static.dotnet.source_splitter import (
    GLOBAL_NAMESPACE,
    NamespaceKind,
    ReorganizedSource,
    render_namespace_unit,
    reorganize,
    split_types,
)
from dotnetdc.utils.security import (
    sanitize_assembly_path,
    sanitize_output_dir,
    validate_namespace_list,
)
from dotnetdc.utils.structured_errors import (
    DecompilationError,
    create_no_output_error,
)

logger = logging.getLogger(__name__)


class DotNetDecompiler:
    """High-level decompilation operations exposed as MCP tools."""

    def __init__(self, runner: ILSpyRunner | None = None):
        self.runner = runner or get_ilspy_runner()

    def _temp_dir(self) -> tempfile.TemporaryDirectory:
        return tempfile.TemporaryDirectory(prefix="dotnetdc-")

    def decompile_assembly(
        self,
        assembly_path: str,
        type_name: str | None = None,
        language: str | None = None
    ) -> str:
        """
        Decompile an assembly (or one type) to a single text.

        Every output file is prefixed with a `// File: <relative path>` line.

        Raises:
            AssemblyNotFoundError: If the assembly does not exist
            DecompilationError: If ilspycmd fails or produces nothing
        """
        path = sanitize_assembly_path(assembly_path)

        with self._temp_dir() as tmp:
            out_dir = Path(tmp)
            self.runner.decompile_to_dir(path, out_dir, type_name=type_name, language=language)

            files = self.runner.collect_sources(out_dir, LISTING_EXTENSIONS)
            if not files:
                raise DecompilationError(create_no_output_error(str(path)))

            contents = self.runner.read_sources(files)
            parts = [
                f"// File: {f.relative_to(out_dir).as_posix()}\n{code}"
                for f, code in zip(files, contents)
            ]

        return "\n\n".join(parts)

    def decompile_assembly_to_dir(
        self,
        assembly_path: str,
        output_dir: str,
        type_name: str | None = None
    ) -> list[str]:
        """
        Decompile into output_dir, keeping ilspycmd's multi-file layout.

        Returns:
            Sorted relative paths of every file in output_dir
        """
        path = sanitize_assembly_path(assembly_path)
        out_dir = sanitize_output_dir(output_dir)

        self.runner.decompile_to_dir(path, out_dir, type_name=type_name)

        return sorted(
            p.relative_to(out_dir).as_posix()
            for p in out_dir.rglob("*") if p.is_file()
        )

    def decompile_and_split(
        self,
        assembly_path: str,
        type_name: str | None = None
    ) -> ReorganizedSource:
        """
        Decompile to C# and reorganize the combined text by namespace.

        Raises:
            OutputTooLargeError: If the output is over the configured ceilings
        """
        path = sanitize_assembly_path(assembly_path)

        with self._temp_dir() as tmp:
            out_dir = Path(tmp)
            self.runner.decompile_to_dir(path, out_dir, type_name=type_name)
            files = self.runner.collect_sources(out_dir, SOURCE_EXTENSIONS)
            combined = "\n".join(self.runner.read_sources(files))

        source = reorganize(combined)
        logger.info(
            f"Split {path.name} into {len(source.namespaces)} namespace units "
            f"({len(files)} files)"
        )
        return source

    def list_namespaces(self, assembly_path: str, type_name: str | None = None) -> list[str]:
        """Sorted, unique namespace names declared in the assembly."""
        source = self.decompile_and_split(assembly_path, type_name)
        return sorted(set(source.declared))

    def _render(self, source: ReorganizedSource, namespace: str, body: str) -> str:
        kind = source.kinds.get(namespace, NamespaceKind.FILE_SCOPED)
        return render_namespace_unit(source.header, namespace, body, kind)

    def decompile_per_namespace_to_dir(
        self,
        assembly_path: str,
        output_dir: str,
        type_name: str | None = None
    ) -> list[str]:
        """
        Write one file per namespace into output_dir.

        Returns:
            Sorted names of the files written
        """
        source = self.decompile_and_split(assembly_path, type_name)
        out_dir = sanitize_output_dir(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for namespace, body in source.namespaces.items():
            file_path = out_dir / namespace_file_name(namespace)
            file_path.write_text(self._render(source, namespace, body), encoding="utf-8")
            written.append(file_path.name)

        return sorted(written)

    def _select(self, source: ReorganizedSource, namespaces: list[str]) -> dict[str, str]:
        wanted = validate_namespace_list(namespaces)
        return {
            ns: body for ns, body in source.namespaces.items()
            if is_selected(ns, wanted)
        }

    def decompile_selected_namespaces(
        self,
        assembly_path: str,
        namespaces: list[str],
        type_name: str | None = None
    ) -> str:
        """
        Return only the requested namespaces (and their sub-namespaces).

        Returns:
            Rendered units joined by newlines, or "" when nothing matched

        Raises:
            ValueError: If namespaces is empty
        """
        validate_namespace_list(namespaces)
        source = self.decompile_and_split(assembly_path, type_name)
        selected = self._select(source, namespaces)

        return "\n".join(self._render(source, ns, body) for ns, body in selected.items())

    def decompile_selected_namespaces_to_dir(
        self,
        assembly_path: str,
        output_dir: str,
        namespaces: list[str],
        type_name: str | None = None
    ) -> list[str]:
        """
        Write one file per requested namespace into output_dir.

        Returns:
            Sorted names of the files written
        """
        validate_namespace_list(namespaces)
        source = self.decompile_and_split(assembly_path, type_name)
        out_dir = sanitize_output_dir(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for namespace, body in self._select(source, namespaces).items():
            file_path = out_dir / namespace_file_name(namespace)
            file_path.write_text(self._render(source, namespace, body), encoding="utf-8")
            written.append(file_path.name)

        return sorted(written)

    def decompile_to_project_structure(
        self,
        assembly_path: str,
        output_dir: str,
        type_name: str | None = None,
        include_docs: bool = True
    ) -> list[str]:
        """
        Lay the assembly out as a C# project.

        Produces Decompiled.csproj, one folder per namespace segment, one file
        per top-level type (or a single Namespace.cs / Global.cs when no type
        could be recognized), the assembly's XML docs under Docs/, and
        Decompiled.manifest.json. Unchanged files are left alone.

        Returns:
            Sorted relative paths of the files actually written
        """
        assembly = sanitize_assembly_path(assembly_path)
        source = self.decompile_and_split(assembly_path, type_name)
        root = sanitize_output_dir(output_dir)
        root.mkdir(parents=True, exist_ok=True)

        written: list[str] = []
        type_mappings: list[dict] = []

        write_file_if_changed(root / CSPROJ_NAME, CSPROJ_TEMPLATE, written, root)

        for namespace, body in source.namespaces.items():
            ns_dir = namespace_directory(root, namespace)
            types = split_types(body)

            if not types:
                name = "Global.cs" if namespace == GLOBAL_NAMESPACE else "Namespace.cs"
                write_file_if_changed(
                    ns_dir / name, self._render(source, namespace, body), written, root
                )
                continue

            for declared_type, type_code in types.items():
                file_path = ns_dir / f"{declared_type}.cs"
                write_file_if_changed(
                    file_path, self._render(source, namespace, type_code), written, root
                )
                type_mappings.append({
                    "namespace": namespace,
                    "typeName": declared_type,
                    "file": file_path.relative_to(root).as_posix(),
                })

        if include_docs:
            xml_path = assembly.with_suffix(".xml")
            if xml_path.is_file():
                try:
                    xml_content = xml_path.read_text(encoding="utf-8")
                    write_file_if_changed(root / "Docs" / xml_path.name, xml_content, written, root)
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"Could not copy XML docs {xml_path.name}: {e}")

        manifest = build_manifest(
            assembly,
            options={"typeName": type_name, "includeDocs": include_docs},
            files=written,
            type_mappings=type_mappings,
            namespaces=list(source.namespaces),
        )
        write_file_if_changed(
            root / MANIFEST_NAME, json.dumps(manifest, indent=2) + "\n", written, root
        )

        logger.info(f"Project structure for {assembly.name}: {len(written)} files written")
        return sorted(written)


# Module-level instance for convenience
_decompiler: DotNetDecompiler | None = None


def get_decompiler() -> DotNetDecompiler:
    """Get or create the singleton decompiler service."""
    global _decompiler
    if _decompiler is None:
        _decompiler = DotNetDecompiler()
    return _decompiler
