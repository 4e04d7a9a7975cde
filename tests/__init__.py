"""
Tests for the Mediation Engine

Organized by subsystem:
- test_gap.py: gap detection across the four dimensions
- test_moderation.py / test_correction.py: confidence and correction
- test_posture.py / test_memory.py / test_persistence.py: learning state
- test_cycle.py: the orchestrator, end to end
- test_service.py / test_reconcile.py: the evaluation facade
- test_cli.py / test_config.py / test_events.py / test_providers.py: ambient surfaces
"""
