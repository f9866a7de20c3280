"""
Option merging module
"""
from .merger import Role, merge_options, matching_overrides

__all__ = ["Role", "merge_options", "matching_overrides"]
