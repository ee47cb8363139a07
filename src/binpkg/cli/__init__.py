"""
Command-line entry points for binpkg.
"""
