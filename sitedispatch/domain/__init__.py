"""
Domain layer: alias resolution, option merging and dispatch
"""
