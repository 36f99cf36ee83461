"""Mobile Proposal Draft Pipeline - Cloud Functions.

This package contains the Python Cloud Functions that turn a mobile job
(record, photos with vision findings, contractor notes, pricing
preferences) into a GOOD/BETTER/BEST proposal draft.

Architecture:
- Vision Aggregator: merges per-photo findings
- Remedy Resolver: repair/replace markers in contractor notes
- Notes Composer: enhancement notes for the scope LLM
- Market Pricing: cached/live 1build pricing and market multiplier
- Package Builder + Confidence Scorer
- Draft Orchestrator: sequences all of the above
"""

__version__ = "1.0.0"
