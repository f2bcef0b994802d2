"""
External system integrations (Opencast).

Remote catalog clients should live under this namespace so they remain
decoupled from app entrypoints (`api/`) and operator scripts (`scripts/`).
"""
