"""Knowledge-base storage and the Writer."""

from skillsmith.store.base import KnowledgeBase
from skillsmith.store.markdown import MarkdownKnowledgeBase, render_skill
from skillsmith.store.memory import InMemoryKnowledgeBase
from skillsmith.store.writer import Writer, WriteResult

__all__ = [
    "KnowledgeBase",
    "InMemoryKnowledgeBase",
    "MarkdownKnowledgeBase",
    "render_skill",
    "Writer",
    "WriteResult",
]
