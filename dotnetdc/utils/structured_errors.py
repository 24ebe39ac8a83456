"""
Structured error messages with actionable suggestions.

Provides rich error information for MCP tool consumers including:
- Error codes for programmatic handling
- Human-readable messages
- Actionable suggestions for resolution
- Debug information for troubleshooting
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """
    Standard error codes for dotnetdc operations.

    Naming convention: CATEGORY_SPECIFIC_ERROR
    """

    # Tooling errors
    ILSPY_NOT_FOUND = "ILSPY_NOT_FOUND"
    DOTNET_SDK_NOT_FOUND = "DOTNET_SDK_NOT_FOUND"
    ILSPY_INSTALL_FAILED = "ILSPY_INSTALL_FAILED"

    # Input errors
    ASSEMBLY_NOT_FOUND = "ASSEMBLY_NOT_FOUND"
    ASSEMBLY_INVALID = "ASSEMBLY_INVALID"
    TYPE_NOT_FOUND = "TYPE_NOT_FOUND"

    # Decompilation errors
    DECOMPILATION_FAILED = "DECOMPILATION_FAILED"
    DECOMPILATION_TIMEOUT = "DECOMPILATION_TIMEOUT"
    NO_OUTPUT = "NO_OUTPUT"
    OUTPUT_TOO_LARGE = "OUTPUT_TOO_LARGE"

    # Parameter errors
    PARAMETER_INVALID = "PARAMETER_INVALID"
    PARAMETER_MISSING = "PARAMETER_MISSING"


@dataclass
class StructuredError:
    """
    Rich error information with actionable suggestions.

    Attributes:
        error: Error code for programmatic handling
        message: Human-readable error description
        reason: Explanation of why the error occurred
        suggestions: List of actionable steps to resolve the error
        debug_info: Additional debugging information
    """

    error: ErrorCode
    message: str
    reason: str | None = None
    suggestions: list[str] = field(default_factory=list)
    debug_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.error.value,
            "message": self.message,
            "reason": self.reason,
            "suggestions": self.suggestions,
            "debug_info": self.debug_info,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_user_message(self) -> str:
        """
        Format error for human-readable display.

        Returns:
            Multi-line string suitable for display to users
        """
        lines = [
            f"Error [{self.error.value}]: {self.message}",
        ]

        if self.reason:
            lines.append(f"Reason: {self.reason}")

        if self.suggestions:
            lines.append("\nSuggested actions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        if self.debug_info:
            lines.append("\nDebug information:")
            for key, value in self.debug_info.items():
                lines.append(f"  {key}: {value}")

        return "\n".join(lines)

    def __str__(self) -> str:
        """Return user-friendly message."""
        return self.to_user_message()


class StructuredBaseError(Exception):
    """
    Exception that wraps a StructuredError.

    Allows raising structured errors as exceptions while maintaining
    all error information.
    """

    def __init__(self, structured_error: StructuredError):
        self.structured_error = structured_error
        super().__init__(structured_error.to_user_message())

    @property
    def code(self) -> ErrorCode:
        return self.structured_error.error

    def to_dict(self) -> dict[str, Any]:
        """Get the underlying structured error as a dictionary."""
        return self.structured_error.to_dict()

    def to_json(self, indent: int = 2) -> str:
        """Get the underlying structured error as JSON."""
        return self.structured_error.to_json(indent)


class ILSpyNotFoundError(StructuredBaseError):
    """ilspycmd could not be located or installed."""


class DecompilationError(StructuredBaseError):
    """ilspycmd ran but did not produce usable output."""


class OutputTooLargeError(StructuredBaseError):
    """Decompiled output exceeds the configured file or byte ceiling."""


class AssemblyNotFoundError(StructuredBaseError):
    """The requested assembly does not exist."""


class ParameterError(StructuredBaseError, ValueError):
    """A tool argument is missing or malformed."""


# =============================================================================
# Suggestion Mappings - Predefined suggestions for common error scenarios
# =============================================================================

TOOLING_SUGGESTIONS = {
    "ilspy_not_found": [
        "Install ilspycmd globally: dotnet tool install -g ilspycmd",
        "Or set ILSPY_CMD in the environment or .env to the ilspycmd path",
        "Run diagnose-dotnet-setup to see which tools were found",
    ],
    "sdk_not_found": [
        "Install the .NET SDK (6.0 or later): https://dotnet.microsoft.com/download",
        "Make sure 'dotnet' is on PATH for the MCP server process",
        "Or set ILSPY_CMD to an existing ilspycmd executable",
    ],
}

DECOMPILATION_SUGGESTIONS = {
    "failed": [
        "Verify the file is a managed .NET assembly (.dll or .exe)",
        "Check that ilspycmd runs: ilspycmd --version",
        "Do not call ilspycmd directly; re-run this MCP tool after fixing the setup",
    ],
    "timeout": [
        "Large assemblies can take minutes; raise DOTNETDC_TIMEOUT",
        "Restrict the run to a single type with type_name",
    ],
    "too_large": [
        "Restrict the run to a single type with type_name",
        "Use decompile-selected-namespaces to narrow the output",
        "Raise MAX_FILES or MAX_BYTES if the machine can handle more",
    ],
    "type_not_found": [
        "Use the fully qualified type name (Namespace.TypeName)",
        "Use list-dotnet-namespaces to see which namespaces exist",
    ],
}


# =============================================================================
# Error Factory Functions
# =============================================================================


def create_ilspy_not_found_error(searched: list[str] | None = None) -> StructuredError:
    """Create error for a missing ilspycmd executable."""
    return StructuredError(
        error=ErrorCode.ILSPY_NOT_FOUND,
        message="Failed to resolve ilspycmd",
        reason="ilspycmd is not on PATH, not configured and could not be installed",
        suggestions=TOOLING_SUGGESTIONS["ilspy_not_found"],
        debug_info={"searched": searched or []},
    )


def create_dotnet_sdk_missing_error() -> StructuredError:
    """Create error for a missing dotnet SDK."""
    return StructuredError(
        error=ErrorCode.DOTNET_SDK_NOT_FOUND,
        message="dotnet SDK not found",
        reason="ilspycmd is not installed and the SDK needed to install it is missing",
        suggestions=TOOLING_SUGGESTIONS["sdk_not_found"],
    )


def create_assembly_not_found_error(assembly_path: str) -> StructuredError:
    """Create error for a missing input assembly."""
    return StructuredError(
        error=ErrorCode.ASSEMBLY_NOT_FOUND,
        message=f"Assembly not found: {assembly_path}",
        reason="The path does not exist or is not a regular file",
        suggestions=[
            "Pass an absolute path to the .dll or .exe",
            "Check the path is readable by the MCP server process",
        ],
        debug_info={"assembly_path": assembly_path},
    )


def create_decompilation_failed_error(
    assembly_path: str,
    tool_error: str | None = None,
    exit_code: int | None = None,
) -> StructuredError:
    """Create error for a failed ilspycmd run."""
    code = classify_tool_error(tool_error or "")
    suggestions = list(DECOMPILATION_SUGGESTIONS["failed"])
    if code == ErrorCode.TYPE_NOT_FOUND:
        suggestions = DECOMPILATION_SUGGESTIONS["type_not_found"] + suggestions

    debug_info: dict[str, Any] = {"assembly_path": assembly_path}
    if exit_code is not None:
        debug_info["exit_code"] = exit_code

    return StructuredError(
        error=code,
        message=f"ilspycmd failed to decompile {assembly_path}",
        reason=(tool_error or "").strip()[-500:] or "ilspycmd exited with an error",
        suggestions=suggestions,
        debug_info=debug_info,
    )


def create_ilspy_install_failed_error(tools_dir: str, details: str | None = None) -> StructuredError:
    """Create error for a failed project-local ilspycmd install."""
    return StructuredError(
        error=ErrorCode.ILSPY_INSTALL_FAILED,
        message=f"Could not install ilspycmd into {tools_dir}",
        reason=(details or "").strip()[-500:] or "dotnet tool install did not produce an executable",
        suggestions=TOOLING_SUGGESTIONS["ilspy_not_found"],
        debug_info={"tools_dir": tools_dir},
    )


def create_timeout_error(assembly_path: str, timeout: int) -> StructuredError:
    """Create error for an ilspycmd run exceeding its timeout."""
    return StructuredError(
        error=ErrorCode.DECOMPILATION_TIMEOUT,
        message=f"ilspycmd timed out after {timeout}s",
        reason="Decompilation did not finish within the configured timeout",
        suggestions=DECOMPILATION_SUGGESTIONS["timeout"],
        debug_info={"assembly_path": assembly_path, "timeout_seconds": timeout},
    )


def create_no_output_error(assembly_path: str) -> StructuredError:
    """Create error for a run that produced no source files."""
    return StructuredError(
        error=ErrorCode.NO_OUTPUT,
        message="ilspycmd produced no source files",
        reason="The output directory is empty after decompilation",
        suggestions=DECOMPILATION_SUGGESTIONS["failed"],
        debug_info={"assembly_path": assembly_path},
    )


def create_output_too_large_error(kind: str, actual: int, limit: int) -> StructuredError:
    """
    Create error for decompiled output exceeding a ceiling.

    Args:
        kind: "files" or "bytes"
        actual: Observed count
        limit: Configured ceiling
    """
    return StructuredError(
        error=ErrorCode.OUTPUT_TOO_LARGE,
        message=f"Output too large: {actual} {kind} exceeds limit {limit}",
        reason=f"The decompiled output is over the MAX_{kind.upper()} ceiling",
        suggestions=DECOMPILATION_SUGGESTIONS["too_large"],
        debug_info={"kind": kind, "actual": actual, "limit": limit},
    )


def create_parameter_error(
    param_name: str,
    provided_value: Any,
    expected: str,
) -> StructuredError:
    """Create error for a missing or invalid tool parameter."""
    missing = provided_value is None or provided_value == "" or provided_value == []
    return StructuredError(
        error=ErrorCode.PARAMETER_MISSING if missing else ErrorCode.PARAMETER_INVALID,
        message=f"{'Missing' if missing else 'Invalid'} parameter: {param_name}",
        reason=f"Expected {expected}",
        suggestions=[f"Provide a valid value for '{param_name}'"],
        debug_info={"parameter_name": param_name, "provided_value": provided_value},
    )


def classify_tool_error(tool_message: str) -> ErrorCode:
    """
    Classify ilspycmd error output into an error code.

    Args:
        tool_message: stderr (or exception text) from ilspycmd

    Returns:
        The most specific matching ErrorCode
    """
    msg_lower = tool_message.lower()

    if "could not find type" in msg_lower or ("type" in msg_lower and "not found" in msg_lower):
        return ErrorCode.TYPE_NOT_FOUND
    if "badimageformat" in msg_lower or "not a .net" in msg_lower or \
       "pe file" in msg_lower or "metadata" in msg_lower:
        return ErrorCode.ASSEMBLY_INVALID
    if "filenotfound" in msg_lower or "could not find file" in msg_lower:
        return ErrorCode.ASSEMBLY_NOT_FOUND
    if "timed out" in msg_lower or "timeout" in msg_lower:
        return ErrorCode.DECOMPILATION_TIMEOUT

    return ErrorCode.DECOMPILATION_FAILED
