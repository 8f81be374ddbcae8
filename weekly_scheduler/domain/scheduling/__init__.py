"""
Scheduling Domain

Weekly recurring slots with per-date overrides:
- repository.py: recurring slot store and exception store
- service.py: occurrence resolution and validated writes
- router.py: HTTP endpoints
"""

from .router import router

__all__ = ["router"]
