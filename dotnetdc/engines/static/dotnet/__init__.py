"""
.NET static analysis engine using ILSpyCmd.

Provides decompilation of .NET assemblies to C# source code and
reorganization of the output by namespace and type.
"""

from dotnetdc.engines.static.dotnet.decompiler import DotNetDecompiler
from dotnetdc.engines.static.dotnet.ilspy_runner import ILSpyRunner

__all__ = ["DotNetDecompiler", "ILSpyRunner"]
