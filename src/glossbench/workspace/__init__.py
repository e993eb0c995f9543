"""Cache bookkeeping and cache-aware queries over a project.

Only the orchestrator is exported here; import
:class:`glossbench.workspace.service.WorkbenchService` from its module,
since the project model itself depends on this package.
"""

from __future__ import annotations

from .cache import CacheOrchestrator, Mutation

__all__ = ["CacheOrchestrator", "Mutation"]
