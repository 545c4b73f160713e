"""SkillsmithEventLinker: isolated event namespace for skillsmith observability.

All skillsmith subscribers register here. Separate from any other
pyventus usage in the process.
"""

from __future__ import annotations

from pyventus.events import EventLinker


class SkillsmithEventLinker(EventLinker):
    """Isolated event namespace for skillsmith observability."""

    pass
