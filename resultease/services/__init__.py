"""Validation, ranking, statistics, analytics, reporting and the pipeline orchestrator."""
