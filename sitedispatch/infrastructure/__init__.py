"""
Infrastructure layer: process and ssh transports
"""
