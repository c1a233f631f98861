from .evaluator import ScoringProfileEvaluator, breakdown, explain
from .matcher import CustomFormatMatcher, compile_formats
from .release_parser import parse_release

__all__ = [
    "CustomFormatMatcher",
    "ScoringProfileEvaluator",
    "breakdown",
    "compile_formats",
    "explain",
    "parse_release",
]
