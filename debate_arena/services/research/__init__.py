from debate_arena.services.research.coordinator import ResearchCoordinator
from debate_arena.services.research.perplexity import PerplexityClient

__all__ = ["PerplexityClient", "ResearchCoordinator"]
