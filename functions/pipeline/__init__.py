"""Mobile proposal draft pipeline.

Draft orchestration over the vision, remedy, notes, pricing and scoring
services.
"""

from pipeline.draft_orchestrator import DraftOrchestrator, generate_mobile_draft

__all__ = ["DraftOrchestrator", "generate_mobile_draft"]
