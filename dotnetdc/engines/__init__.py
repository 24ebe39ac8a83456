"""
Decompilation engines package.
"""
