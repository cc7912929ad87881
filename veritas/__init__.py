"""
Veritas — Validation Orchestration & Confidence Scoring.

Architecture:
    veritas/
    ├── config.py        # Pydantic settings + feature gate
    ├── exceptions.py    # Error taxonomy (timeouts, validator errors, config)
    ├── schemas/         # Pydantic data contracts (results, scores, snapshots)
    ├── validators/      # Domain validators + cross-source discrepancy detector
    ├── engine/          # Orchestrator, confidence calculator, quality, reliability
    ├── alerting/        # Alert generation + operational alert rules
    └── monitoring/      # Rolling validation metrics store

Module Boundaries:
    - Veritas never fetches data — validators receive already-fetched snapshots
    - Veritas never decides trading actions — it scores trust in the data
    - orchestrate_validation() always resolves, it never raises
    - Every score is bounded to [0, 100] and traceable to its components

Data Flow:
    Snapshots → Validators (+ Discrepancy Detector) → Orchestrator
    → Confidence Score + Alerts + Quality Report → Monitoring → Alert Rules

Version: 1.0.0
"""

__version__ = "1.0.0"
