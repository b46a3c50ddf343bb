"""Search services: upstream provider client and orchestration."""

from .orchestrator import SearchOrchestrator, build_orchestrator, deduplicate_results
from .upstream import SerpApiClient

__all__ = ["SearchOrchestrator", "SerpApiClient", "build_orchestrator", "deduplicate_results"]
