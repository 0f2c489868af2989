"""Route matching services."""

from .matcher import MatchingPolicy, RouteCompatibilityMatcher
from .projector import project

__all__ = ["MatchingPolicy", "RouteCompatibilityMatcher", "project"]
