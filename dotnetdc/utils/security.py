"""Security utilities for input validation and sanitization."""

import logging
from pathlib import Path

from dotnetdc.utils.structured_errors import (
    AssemblyNotFoundError,
    ParameterError,
    StructuredBaseError,
    create_assembly_not_found_error,
    create_parameter_error,
)

logger = logging.getLogger(__name__)

ASSEMBLY_SUFFIXES = (".dll", ".exe", ".winmd", ".netmodule")


class SecurityError(Exception):
    """Base exception for security-related errors."""
    pass


class FileSizeError(SecurityError):
    """Raised when file size exceeds limits."""
    pass


def sanitize_assembly_path(
    assembly_path: str | Path,
    max_size_bytes: int = 500 * 1024 * 1024  # 500MB default
) -> Path:
    """
    Validate a user-supplied assembly path.

    Args:
        assembly_path: Path to .NET assembly
        max_size_bytes: Maximum allowed file size in bytes

    Returns:
        Validated absolute path

    Raises:
        AssemblyNotFoundError: If the file does not exist or is not a file
        FileSizeError: If file exceeds size limit
        ParameterError: If path is empty
        ValueError: If path cannot be resolved
    """
    if not assembly_path or not str(assembly_path).strip():
        raise ParameterError(create_parameter_error(
            "assembly_path", assembly_path, "a path to a .dll or .exe"
        ))

    try:
        path = Path(assembly_path).expanduser().resolve()
    except (OSError, RuntimeError) as e:
        raise ValueError(f"Invalid path: {e}")

    if not path.is_file():
        raise AssemblyNotFoundError(create_assembly_not_found_error(str(assembly_path)))

    if path.suffix.lower() not in ASSEMBLY_SUFFIXES:
        logger.warning(f"Unexpected assembly extension: {path.name}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ValueError(f"Cannot get file size: {e}")

    if file_size > max_size_bytes:
        raise FileSizeError(
            f"File too large: {file_size} bytes (max: {max_size_bytes})"
        )

    return path


def sanitize_output_dir(output_dir: str | Path) -> Path:
    """
    Validate an output directory path.

    The directory does not need to exist, but must not be an existing file.

    Raises:
        ParameterError: If path is empty
        ValueError: If path points at a file
    """
    if not output_dir or not str(output_dir).strip():
        raise ParameterError(create_parameter_error(
            "output_dir", output_dir, "a directory path"
        ))

    path = Path(output_dir).expanduser().resolve()
    if path.exists() and not path.is_dir():
        raise ValueError(f"Output path is not a directory: {output_dir}")

    return path


def validate_namespace_list(namespaces) -> list[str]:
    """
    Validate a list of requested namespace names.

    Returns:
        Stripped, non-empty names in request order

    Raises:
        ParameterError: If the value is not a non-empty list of strings
    """
    if not isinstance(namespaces, (list, tuple)) or not namespaces:
        raise ParameterError(create_parameter_error(
            "namespaces", namespaces, "a non-empty array of namespace names"
        ))

    cleaned = []
    for ns in namespaces:
        if not isinstance(ns, str):
            raise ParameterError(create_parameter_error(
                "namespaces", namespaces, "namespace entries to be strings"
            ))
        ns = ns.strip()
        if ns:
            cleaned.append(ns)

    if not cleaned:
        raise ParameterError(create_parameter_error(
            "namespaces", namespaces, "a non-empty array of namespace names"
        ))
    return cleaned


def safe_error_message(tool_name: str, error: Exception) -> str:
    """
    Build the text returned to the MCP client for a failed tool call.

    Structured errors keep their suggestions; other exceptions are reduced
    to their message.
    """
    if isinstance(error, StructuredBaseError):
        return f"Error: {error.structured_error.to_user_message()}"

    logger.debug(f"{tool_name} failed with {type(error).__name__}: {error}")
    return f"Error: {error}"
