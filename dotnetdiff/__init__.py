"""
dotnet-diff: locate and cache the .NET build artifacts needed to compare
the native code produced for two assemblies.
"""

__version__ = "0.1.0"
