"""
Command-line interfaces
"""
