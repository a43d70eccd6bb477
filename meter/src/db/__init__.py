"""
TimescaleDB persistence for meter snapshots.

CHANGELOG:
- 2026-10-18: Initial creation
"""
