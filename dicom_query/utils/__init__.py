"""
Utilities Package

Logging setup and JSON helpers shared by the CLI and the result store
"""
