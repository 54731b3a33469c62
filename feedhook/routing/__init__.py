"""
Feedhook Routing
================

Decides where an entry goes (category routing) and in what shape
(link, image upload or rich embed).
"""

from .pattern_matcher import DeliveryMode, PatternMatcher, split_patterns, compile_pattern
from .category_router import CategoryRouter, parse_category_map, serialize_category_map

__all__ = [
    "DeliveryMode",
    "PatternMatcher",
    "split_patterns",
    "compile_pattern",
    "CategoryRouter",
    "parse_category_map",
    "serialize_category_map",
]
