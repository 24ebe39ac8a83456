"""
ILSpyCmd runner for cross-platform .NET decompilation.

Provides a wrapper around ILSpyCmd (the CLI version of ILSpy): locating or
bootstrapping the tool, running it under a bounded concurrency gate, and
collecting the files it writes.
"""

import logging
import os
import platform
import shutil
import subprocess
import threading
import time
from pathlib import Path

from dotnetdc.utils.config import (
    get_config,
    get_config_status,
    get_max_bytes,
    get_max_concurrency,
    get_max_files,
    get_timeout,
    set_env_value,
)
from dotnetdc.utils.structured_errors import (
    DecompilationError,
    ILSpyNotFoundError,
    OutputTooLargeError,
    create_decompilation_failed_error,
    create_dotnet_sdk_missing_error,
    create_ilspy_install_failed_error,
    create_ilspy_not_found_error,
    create_output_too_large_error,
    create_timeout_error,
)

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".cs",)
LISTING_EXTENSIONS = (".cs", ".il")


class ILSpyRunner:
    """
    Cross-platform ILSpyCmd wrapper for .NET decompilation.

    Supports Windows, Linux, and macOS with automatic tool detection and a
    project-local install fallback.
    """

    def __init__(
        self,
        tools_dir: Path | None = None,
        max_concurrency: int | None = None,
        timeout: int | None = None
    ):
        """
        Initialize ILSpy runner.

        Args:
            tools_dir: Directory for a project-local ilspycmd install.
                       Defaults to ./tools
            max_concurrency: Maximum concurrent ilspycmd processes
            timeout: Timeout in seconds for one ilspycmd run
        """
        self.system = platform.system()
        self.tools_dir = tools_dir or Path.cwd() / "tools"
        self.max_concurrency = max_concurrency or get_max_concurrency()
        self.timeout = timeout or get_timeout()
        self._gate = threading.BoundedSemaphore(self.max_concurrency)

        self._ilspycmd_path: str | None = None
        self._dotnet_path: str | None = None

        logger.info(f"Initialized ILSpy runner on {self.system}")
        logger.info(f"Max concurrency: {self.max_concurrency}, timeout: {self.timeout}s")

    @property
    def _exe_name(self) -> str:
        return "ilspycmd.exe" if self.system == "Windows" else "ilspycmd"

    @property
    def local_tool_path(self) -> Path:
        """Location of the project-local ilspycmd install."""
        return self.tools_dir / self._exe_name

    def _find_ilspycmd(self) -> str | None:
        """
        Find ILSpyCmd executable without installing anything.

        Checks:
        1. ILSPY_CMD from environment or .env
        2. Project-local install under tools/
        3. ilspycmd in PATH (persisted to .env when found)
        4. Common dotnet global tool locations

        Returns:
            Path to ilspycmd or None if not found
        """
        if self._ilspycmd_path:
            return self._ilspycmd_path

        configured = get_config("ILSPY_CMD")
        if configured and Path(configured).exists():
            self._ilspycmd_path = configured
            logger.info(f"Using ILSPY_CMD: {configured}")
            return configured

        if self.local_tool_path.exists():
            self._ilspycmd_path = str(self.local_tool_path)
            logger.info(f"Found project-local ilspycmd: {self._ilspycmd_path}")
            return self._ilspycmd_path

        ilspycmd = shutil.which("ilspycmd")
        if ilspycmd:
            self._ilspycmd_path = ilspycmd
            logger.info(f"Found ilspycmd in PATH: {ilspycmd}")
            self._persist(ilspycmd)
            return ilspycmd

        home = Path.home()
        if self.system == "Windows":
            tool_paths = [
                home / ".dotnet" / "tools" / "ilspycmd.exe",
                Path(os.environ.get("USERPROFILE", "")) / ".dotnet" / "tools" / "ilspycmd.exe",
            ]
        else:  # Linux/macOS
            tool_paths = [
                home / ".dotnet" / "tools" / "ilspycmd",
                Path("/usr/local/bin/ilspycmd"),
                Path("/usr/bin/ilspycmd"),
            ]

        for path in tool_paths:
            if path.exists():
                self._ilspycmd_path = str(path)
                logger.info(f"Found ilspycmd at: {path}")
                self._persist(self._ilspycmd_path)
                return self._ilspycmd_path

        return None

    def _find_dotnet(self) -> str | None:
        """
        Find dotnet CLI.

        Returns:
            Path to dotnet or None if not found
        """
        if self._dotnet_path:
            return self._dotnet_path

        dotnet = shutil.which("dotnet")
        if dotnet:
            self._dotnet_path = dotnet
            return dotnet

        if self.system == "Windows":
            paths = [
                Path(os.environ.get("ProgramFiles", "")) / "dotnet" / "dotnet.exe",
                Path("C:\\Program Files\\dotnet\\dotnet.exe"),
            ]
        else:
            paths = [
                Path("/usr/share/dotnet/dotnet"),
                Path("/usr/local/share/dotnet/dotnet"),
                Path.home() / ".dotnet" / "dotnet",
            ]

        for path in paths:
            if path.exists():
                self._dotnet_path = str(path)
                return self._dotnet_path

        return None

    def _persist(self, resolved_path: str) -> None:
        """Save the resolved ilspycmd path as ILSPY_CMD in ./.env."""
        try:
            set_env_value("ILSPY_CMD", resolved_path)
        except OSError as e:
            logger.warning(f"Could not persist ILSPY_CMD: {e}")

    def _install_local(self, dotnet: str) -> str:
        """
        Install (or update) ilspycmd as a local tool under tools_dir.

        Returns:
            Output of the last failed attempt, or "" on success
        """
        self.tools_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Installing ilspycmd into {self.tools_dir}")

        details = ""
        for action in ("install", "update"):
            try:
                result = subprocess.run(
                    [dotnet, "tool", action, "ilspycmd", "--tool-path", str(self.tools_dir)],
                    capture_output=True,
                    text=True,
                    timeout=300
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"dotnet tool {action} ilspycmd failed: {e}")
                details = str(e)
                continue

            if result.returncode == 0:
                return ""
            # Already installed shows up as a failed install; try update next
            logger.debug(f"dotnet tool {action} exited {result.returncode}: {result.stderr.strip()}")
            details = result.stderr or result.stdout

        return details

    def resolve_ilspycmd(self) -> str:
        """
        Find ilspycmd, installing it locally when only the SDK is present.

        Returns:
            Path to ilspycmd

        Raises:
            ILSpyNotFoundError: If the SDK is missing or installation failed
        """
        ilspycmd = self._find_ilspycmd()
        if ilspycmd:
            return ilspycmd

        dotnet = self._find_dotnet()
        if not dotnet:
            raise ILSpyNotFoundError(create_dotnet_sdk_missing_error())

        details = self._install_local(dotnet)

        if self.local_tool_path.exists():
            self._ilspycmd_path = str(self.local_tool_path)
            self._persist(self._ilspycmd_path)
            return self._ilspycmd_path

        if details:
            raise ILSpyNotFoundError(create_ilspy_install_failed_error(str(self.tools_dir), details))
        raise ILSpyNotFoundError(create_ilspy_not_found_error(
            searched=["ILSPY_CMD", str(self.local_tool_path), "PATH", "~/.dotnet/tools"]
        ))

    def is_available(self) -> bool:
        """Check if ILSpyCmd is available without installing it."""
        return self._find_ilspycmd() is not None

    def get_version(self) -> str | None:
        """Get ILSpyCmd version."""
        ilspycmd = self._find_ilspycmd()
        if not ilspycmd:
            return None

        try:
            result = subprocess.run(
                [ilspycmd, "--version"],
                capture_output=True,
                text=True,
                timeout=10
            )
            return result.stdout.strip() or result.stderr.strip()
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Failed to get ilspycmd version: {e}")
            return None

    def run(self, args: list[str], assembly_path: Path) -> subprocess.CompletedProcess:
        """
        Run ilspycmd with the given arguments under the concurrency gate.

        Args:
            args: Arguments after the executable
            assembly_path: Assembly being processed (for error reporting)

        Returns:
            Completed process

        Raises:
            ILSpyNotFoundError: If ilspycmd cannot be resolved
            DecompilationError: On timeout or non-zero exit
        """
        ilspycmd = self.resolve_ilspycmd()
        cmd = [ilspycmd, *args]

        with self._gate:
            logger.info(f"Running ilspycmd on {assembly_path.name}")
            start_time = time.time()
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout
                )
            except subprocess.TimeoutExpired:
                raise DecompilationError(create_timeout_error(str(assembly_path), self.timeout))
            except OSError as e:
                raise DecompilationError(
                    create_decompilation_failed_error(str(assembly_path), tool_error=str(e))
                )
            elapsed = time.time() - start_time

        if result.returncode != 0:
            raise DecompilationError(create_decompilation_failed_error(
                str(assembly_path),
                tool_error=result.stderr or result.stdout,
                exit_code=result.returncode,
            ))

        logger.info(f"ilspycmd finished in {elapsed:.2f}s")
        return result

    def decompile_to_dir(
        self,
        assembly_path: Path,
        output_dir: Path,
        type_name: str | None = None,
        language: str | None = None
    ) -> Path:
        """
        Decompile an assembly into a directory.

        A .pdb next to the assembly is copied into the output directory first
        so ilspycmd can pick up local variable names.

        Args:
            assembly_path: Path to .NET assembly
            output_dir: Directory to write into (created if missing)
            type_name: Optional fully qualified type to decompile
            language: "IL" for IL disassembly, anything else for C#

        Returns:
            The output directory
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        pdb = assembly_path.with_suffix(".pdb")
        if pdb.is_file():
            try:
                shutil.copy2(pdb, output_dir / pdb.name)
            except OSError as e:
                logger.warning(f"Could not copy {pdb.name}: {e}")

        args = ["-o", str(output_dir)]
        if type_name:
            args.extend(["-t", type_name])
        if language and language.strip().lower() == "il":
            args.append("--il")
        args.append(str(assembly_path))

        self.run(args, assembly_path)
        return output_dir

    @staticmethod
    def collect_sources(root: Path, extensions: tuple[str, ...] = SOURCE_EXTENSIONS) -> list[Path]:
        """Recursively list files under root with one of the extensions, sorted."""
        return sorted(
            p for p in root.rglob("*")
            if p.is_file() and p.suffix.lower() in extensions
        )

    def read_sources(
        self,
        files: list[Path],
        max_files: int | None = None,
        max_bytes: int | None = None
    ) -> list[str]:
        """
        Read decompiled files, enforcing output ceilings.

        Raises:
            OutputTooLargeError: If the file count or total size is over limit
        """
        max_files = max_files if max_files is not None else get_max_files()
        max_bytes = max_bytes if max_bytes is not None else get_max_bytes()

        if len(files) > max_files:
            raise OutputTooLargeError(create_output_too_large_error("files", len(files), max_files))

        contents = []
        total = 0
        for path in files:
            text = path.read_text(encoding="utf-8", errors="replace")
            total += len(text)
            if total > max_bytes:
                raise OutputTooLargeError(create_output_too_large_error("bytes", total, max_bytes))
            contents.append(text)

        return contents

    def diagnose(self) -> dict:
        """
        Run diagnostic checks on ILSpyCmd installation.

        Returns:
            Diagnostic information dict
        """
        diag = {
            "platform": self.system,
            "ilspycmd_found": False,
            "ilspycmd_path": None,
            "ilspycmd_version": None,
            "dotnet_found": False,
            "dotnet_path": None,
            "dotnet_version": None,
            "tools_dir": str(self.tools_dir),
            "max_concurrency": self.max_concurrency,
            "timeout": self.timeout,
            "max_files": get_max_files(),
            "max_bytes": get_max_bytes(),
            "config": get_config_status(),
        }

        ilspycmd = self._find_ilspycmd()
        if ilspycmd:
            diag["ilspycmd_found"] = True
            diag["ilspycmd_path"] = ilspycmd
            diag["ilspycmd_version"] = self.get_version()

        dotnet = self._find_dotnet()
        if dotnet:
            diag["dotnet_found"] = True
            diag["dotnet_path"] = dotnet
            try:
                result = subprocess.run(
                    [dotnet, "--version"],
                    capture_output=True,
                    text=True,
                    timeout=10
                )
                diag["dotnet_version"] = result.stdout.strip()
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"dotnet --version failed: {e}")

        return diag


# Module-level instance for convenience
_runner: ILSpyRunner | None = None


def get_ilspy_runner() -> ILSpyRunner:
    """Get or create the singleton ILSpy runner."""
    global _runner
    if _runner is None:
        _runner = ILSpyRunner()
    return _runner
