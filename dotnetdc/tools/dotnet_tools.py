"""
.NET decompilation MCP tools using ILSpyCmd.

Every tool returns text. Failures are reported as text starting with
"Error:" instead of being raised to the protocol layer.
"""

import logging

from fastmcp import FastMCP

from dotnetdc.engines.static.dotnet.decompiler import DotNetDecompiler, get_decompiler
from dotnetdc.engines.static.dotnet.project_layout import build_file_tree
from dotnetdc.utils.config import get_max_bytes, get_max_files
from dotnetdc.utils.formatters import (
    format_diagnostics,
    format_json_block,
    format_namespace_list,
    format_written_files,
)
from dotnetdc.utils.security import safe_error_message

logger = logging.getLogger(__name__)

MISSING_ASSEMBLY = "Error: Missing assembly_path parameter"
MISSING_ASSEMBLY_OR_DIR = "Error: Missing assembly_path or output_dir parameter"


def register_dotnet_tools(app: FastMCP, decompiler: DotNetDecompiler | None = None) -> None:
    """
    Register .NET decompilation tools with the MCP server.

    Args:
        app: FastMCP application instance
        decompiler: Service to use (defaults to the shared instance)
    """
    service = decompiler or get_decompiler()

    @app.tool(name="decompile-dotnet-assembly")
    def decompile_dotnet_assembly(
        assembly_path: str,
        type_name: str | None = None,
        language: str | None = None
    ) -> str:
        """
        Decompile a .NET assembly (.dll/.exe). Optionally target a specific type.

        Args:
            assembly_path: Absolute path to the .NET assembly (.dll or .exe)
            type_name: Optional fully qualified type name (e.g., Namespace.TypeName)
            language: Optional output language, "CSharp" (default) or "IL"

        Returns:
            Decompiled source of every output file, each prefixed with its path
        """
        if not assembly_path:
            return MISSING_ASSEMBLY
        try:
            return service.decompile_assembly(assembly_path, type_name=type_name, language=language)
        except Exception as e:
            logger.error(f"decompile-dotnet-assembly failed: {e}")
            return safe_error_message("decompile-dotnet-assembly", e)

    @app.tool(name="list-dotnet-namespaces")
    def list_dotnet_namespaces(
        assembly_path: str,
        type_name: str | None = None
    ) -> str:
        """
        List namespaces found in a .NET assembly (optionally restrict to a type).

        Args:
            assembly_path: Absolute path to the .NET assembly
            type_name: Optional fully qualified type name

        Returns:
            One namespace per line, sorted
        """
        if not assembly_path:
            return MISSING_ASSEMBLY
        try:
            namespaces = service.list_namespaces(assembly_path, type_name=type_name)
            return format_namespace_list(namespaces)
        except Exception as e:
            logger.error(f"list-dotnet-namespaces failed: {e}")
            return safe_error_message("list-dotnet-namespaces", e)

    @app.tool(name="decompile-selected-namespaces")
    def decompile_selected_namespaces(
        assembly_path: str,
        namespaces: list[str],
        type_name: str | None = None
    ) -> str:
        """
        Decompile only selected namespaces and return merged text output.

        A namespace is selected when it equals a requested name or is nested
        below one (System.IO selects System.IO.Compression).

        Args:
            assembly_path: Absolute path to the .NET assembly
            namespaces: Namespaces to keep
            type_name: Optional fully qualified type name
        """
        if not assembly_path or not namespaces:
            return "Error: Missing assembly_path or namespaces[]"
        try:
            return service.decompile_selected_namespaces(
                assembly_path, namespaces, type_name=type_name
            )
        except Exception as e:
            logger.error(f"decompile-selected-namespaces failed: {e}")
            return safe_error_message("decompile-selected-namespaces", e)

    @app.tool(name="decompile-selected-namespaces-to-dir")
    def decompile_selected_namespaces_to_dir(
        assembly_path: str,
        output_dir: str,
        namespaces: list[str],
        type_name: str | None = None
    ) -> str:
        """
        Decompile only selected namespaces and write one file per namespace into output_dir.

        Args:
            assembly_path: Absolute path to the .NET assembly
            output_dir: Directory to write into (created if missing)
            namespaces: Namespaces to keep
            type_name: Optional fully qualified type name
        """
        if not assembly_path or not output_dir or not namespaces:
            return "Error: Missing assembly_path, output_dir or namespaces[]"
        try:
            files = service.decompile_selected_namespaces_to_dir(
                assembly_path, output_dir, namespaces, type_name=type_name
            )
            return format_written_files(files, output_dir)
        except Exception as e:
            logger.error(f"decompile-selected-namespaces-to-dir failed: {e}")
            return safe_error_message("decompile-selected-namespaces-to-dir", e)

    @app.tool(name="decompile-to-project-structure")
    def decompile_to_project_structure(
        assembly_path: str,
        output_dir: str,
        type_name: str | None = None,
        include_docs: bool = True
    ) -> str:
        """
        Decompile an assembly into a synthetic C# project layout (csproj + namespace/type folders).

        Args:
            assembly_path: Absolute path to the .NET assembly
            output_dir: Project root (created if missing)
            type_name: Optional fully qualified type name
            include_docs: Copy the assembly's XML doc file if found

        Returns:
            Summary line followed by a JSON block with the file tree and limits

        Note:
            Files whose content did not change are not rewritten, so a re-run
            only reports what changed.
        """
        if not assembly_path or not output_dir:
            return MISSING_ASSEMBLY_OR_DIR
        try:
            files = service.decompile_to_project_structure(
                assembly_path, output_dir, type_name=type_name, include_docs=include_docs
            )
            data = {
                "outputDir": output_dir,
                "files": files,
                "tree": build_file_tree(output_dir, files),
                "stats": {
                    "fileCount": len(files),
                    "maxFiles": get_max_files(),
                    "maxBytes": get_max_bytes(),
                },
            }
            return f"Wrote {len(files)} files to {output_dir}\n\n{format_json_block(data)}"
        except Exception as e:
            logger.error(f"decompile-to-project-structure failed: {e}")
            return safe_error_message("decompile-to-project-structure", e)

    @app.tool(name="decompile-per-namespace-to-dir")
    def decompile_per_namespace_to_dir(
        assembly_path: str,
        output_dir: str,
        type_name: str | None = None
    ) -> str:
        """
        Decompile and write one file per namespace into output_dir.

        Args:
            assembly_path: Absolute path to the .NET assembly
            output_dir: Directory to write into (created if missing)
            type_name: Optional fully qualified type name
        """
        if not assembly_path or not output_dir:
            return MISSING_ASSEMBLY_OR_DIR
        try:
            files = service.decompile_per_namespace_to_dir(
                assembly_path, output_dir, type_name=type_name
            )
            return format_written_files(files, output_dir)
        except Exception as e:
            logger.error(f"decompile-per-namespace-to-dir failed: {e}")
            return safe_error_message("decompile-per-namespace-to-dir", e)

    @app.tool(name="decompile-dotnet-assembly-to-dir")
    def decompile_dotnet_assembly_to_dir(
        assembly_path: str,
        output_dir: str,
        type_name: str | None = None
    ) -> str:
        """
        Decompile a .NET assembly to the specified output directory, preserving multi-file structure.

        Args:
            assembly_path: Absolute path to the .NET assembly (.dll or .exe)
            output_dir: Directory to write decompiled files into (created if missing)
            type_name: Optional fully qualified type name (e.g., Namespace.TypeName)
        """
        if not assembly_path or not output_dir:
            return MISSING_ASSEMBLY_OR_DIR
        try:
            files = service.decompile_assembly_to_dir(
                assembly_path, output_dir, type_name=type_name
            )
            return format_written_files(files, output_dir)
        except Exception as e:
            logger.error(f"decompile-dotnet-assembly-to-dir failed: {e}")
            return safe_error_message("decompile-dotnet-assembly-to-dir", e)

    @app.tool(name="diagnose-dotnet-setup")
    def diagnose_dotnet_setup() -> str:
        """
        Check .NET decompilation tools installation status.

        Verifies that ILSpyCmd and the .NET SDK are installed and reports
        the configured limits.
        """
        try:
            return format_diagnostics(service.runner.diagnose())
        except Exception as e:
            logger.error(f"diagnose-dotnet-setup failed: {e}")
            return safe_error_message("diagnose-dotnet-setup", e)

    logger.info("Registered 8 .NET decompilation tools")
