"""
Output formatting utilities for tool results.
"""

import json


def format_written_files(files: list[str], output_dir: str) -> str:
    """
    Format the summary returned by directory-writing tools.

    Args:
        files: Relative paths written
        output_dir: Directory the files were written to

    Returns:
        "Wrote N files to <dir>" followed by one line per file
    """
    lines = [f"Wrote {len(files)} files to {output_dir}"]
    lines.extend(f" - {f}" for f in files)
    return "\n".join(lines)


def format_namespace_list(namespaces: list[str]) -> str:
    """One namespace per line, or "(none)"."""
    return "\n".join(namespaces) or "(none)"


def format_json_block(data: dict) -> str:
    """Render data as a fenced JSON block."""
    return "```json\n" + json.dumps(data, indent=2) + "\n```"


def format_diagnostics(diag: dict) -> str:
    """
    Format ILSpyRunner.diagnose() output for display.

    Args:
        diag: Diagnostic information dict

    Returns:
        Formatted string
    """
    result = "**.NET Decompiler Diagnostics**\n\n"

    if diag["ilspycmd_found"]:
        result += "✅ **ILSpyCmd:** Found\n"
        result += f"   - Path: `{diag['ilspycmd_path']}`\n"
        if diag["ilspycmd_version"]:
            result += f"   - Version: {diag['ilspycmd_version']}\n"
    else:
        result += "❌ **ILSpyCmd:** Not found\n"
        result += "   - Install with: `dotnet tool install -g ilspycmd`\n"
        result += f"   - Or it will be installed into `{diag['tools_dir']}` on first use\n"

    result += "\n"

    if diag["dotnet_found"]:
        result += "✅ **.NET SDK:** Found\n"
        result += f"   - Path: `{diag['dotnet_path']}`\n"
        if diag["dotnet_version"]:
            result += f"   - Version: {diag['dotnet_version']}\n"
    else:
        result += "❌ **.NET SDK:** Not found\n"
        result += "   - Download from: https://dotnet.microsoft.com/download\n"

    result += "\n**Limits:**\n"
    result += f"- Max concurrency: {diag['max_concurrency']}\n"
    result += f"- Timeout: {diag['timeout']}s\n"
    result += f"- Max files: {diag['max_files']}\n"
    result += f"- Max bytes: {diag['max_bytes']}\n"

    if diag.get("config"):
        result += "\n**Configuration:**\n"
        for key, status in diag["config"].items():
            if status["set"]:
                result += f"- {key}: `{status['value']}` ({status['source']})\n"
            else:
                result += f"- {key}: not set\n"

    result += f"\n**Platform:** {diag['platform']}\n"

    result += "\n---\n"
    if diag["ilspycmd_found"] or diag["dotnet_found"]:
        result += "✅ **.NET decompilation is ready!**\n"
    else:
        result += "⚠️ **Setup required.** Install missing components above.\n"

    return result
