"""Markdown chunking - split by headings, keep fenced code intact."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_HEADING = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_FENCE_OPEN = re.compile(r"^\s*(```+|~~~+)\s*([\w+#.-]*)")


@dataclass
class CodeBlock:
    """A fenced code block and the prose lines just before it."""

    code: str
    language: str = ""
    lead_in: str = ""  # up to two non-blank lines before the fence


@dataclass
class Chunk:
    """A heading-delimited section of a Markdown document."""

    id: str
    heading: str | None
    location: str  # heading path, e.g. "SwiftData > Queries"
    level: int = 0
    prose: list[str] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.prose)


def chunk_markdown(content: str, root: str = "root") -> list[Chunk]:
    """Chunk markdown by headings, preserving hierarchy.

    Lines inside fenced code blocks are never treated as headings, so
    shell or Python comments starting with ``#`` stay in their block.
    Content before the first heading becomes a level-0 chunk.
    """
    chunks: list[Chunk] = [Chunk(id="section_0", heading=None, location=root, level=0)]
    hierarchy: list[tuple[int, str]] = []

    fence: str | None = None
    fence_lang = ""
    fence_lines: list[str] = []
    recent_prose: list[str] = []

    for line in content.splitlines():
        current = chunks[-1]

        if fence is not None:
            if line.strip().startswith(fence) and line.strip().strip(fence[0]) == "":
                current.code_blocks.append(CodeBlock(
                    code="\n".join(fence_lines),
                    language=fence_lang,
                    lead_in="\n".join(recent_prose[-2:]),
                ))
                fence = None
                fence_lines = []
                recent_prose = []
            else:
                fence_lines.append(line)
            continue

        opened = _FENCE_OPEN.match(line)
        if opened:
            fence = opened.group(1)
            fence_lang = opened.group(2).lower()
            # the block breaks the paragraph around it
            current.prose.append("")
            continue

        heading = _HEADING.match(line)
        if heading:
            level = len(heading.group(1))
            title = heading.group(2).strip()
            while hierarchy and hierarchy[-1][0] >= level:
                hierarchy.pop()
            hierarchy.append((level, title))
            chunks.append(Chunk(
                id=f"section_{len(chunks)}",
                heading=title,
                location=" > ".join(t for _, t in hierarchy),
                level=level,
            ))
            recent_prose = []
            continue

        current.prose.append(line)
        if line.strip():
            recent_prose.append(line.strip())

    # Unterminated fence: keep the code rather than dropping it
    if fence is not None and fence_lines:
        chunks[-1].code_blocks.append(CodeBlock(
            code="\n".join(fence_lines),
            language=fence_lang,
            lead_in="\n".join(recent_prose[-2:]),
        ))

    return [c for c in chunks if c.heading is not None or c.text.strip() or c.code_blocks]
