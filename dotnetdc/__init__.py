"""
dotnetdc: .NET assembly decompilation over the Model Context Protocol.
"""

from dotnetdc.utils.config import PACKAGE_VERSION

__version__ = PACKAGE_VERSION
