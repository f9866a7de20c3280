"""
Adapters: configuration loading and the command line
"""
