"""
Static analysis engines.

Currently supports:
- ILSpyCmd (.NET assemblies)
"""
