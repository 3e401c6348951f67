"""
Core utilities: configuration, errors, logging and toolchain discovery.
"""
