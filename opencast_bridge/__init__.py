"""
Shared Opencast bridge library code.

This package is intended to hold code that is reused across:
- the FastAPI facade in `api/`
- operator scripts in `scripts/`

App entrypoints (FastAPI routers, CLI scripts) should live outside this package and
import from `opencast_bridge` rather than the other way around.
"""
