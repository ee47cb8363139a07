"""
Shared building blocks: configuration, errors, digests and file access.
"""
