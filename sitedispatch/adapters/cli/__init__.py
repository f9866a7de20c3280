"""
Command line adapters
"""
