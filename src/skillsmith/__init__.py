"""skillsmith: keep a knowledge base of skill documents up to date.

Batch pipeline: Classifier -> Extractor -> Merger -> Writer -> Reporter.
"""

from skillsmith.classify import Classifier, ClassificationRule, Ruleset
from skillsmith.config import SkillsmithConfig
from skillsmith.core.models import (
    ChangeReport,
    Constraint,
    DecisionRule,
    IncomingDocument,
    KnowledgeEntry,
    Pattern,
    RecordStatus,
    Reference,
)
from skillsmith.extract import Extractor
from skillsmith.merge import Merger
from skillsmith.pipeline import IngestionPipeline, RunResult
from skillsmith.report import Reporter
from skillsmith.store import InMemoryKnowledgeBase, MarkdownKnowledgeBase, Writer

__version__ = "0.1.0"

__all__ = [
    "Classifier",
    "ClassificationRule",
    "Ruleset",
    "SkillsmithConfig",
    "ChangeReport",
    "Constraint",
    "DecisionRule",
    "IncomingDocument",
    "KnowledgeEntry",
    "Pattern",
    "RecordStatus",
    "Reference",
    "Extractor",
    "Merger",
    "IngestionPipeline",
    "RunResult",
    "Reporter",
    "InMemoryKnowledgeBase",
    "MarkdownKnowledgeBase",
    "Writer",
]
