"""Classification: route incoming documents to knowledge-base entries."""

from skillsmith.classify.classifier import Classifier
from skillsmith.classify.keywords import extract_keywords, top_keywords
from skillsmith.classify.ruleset import ClassificationRule, Ruleset

__all__ = [
    "Classifier",
    "ClassificationRule",
    "Ruleset",
    "extract_keywords",
    "top_keywords",
]
