from debate_arena.services.agents.debater import DebaterAgent
from debate_arena.services.agents.fact_checker import FactCheckerAgent
from debate_arena.services.agents.moderator import ModeratorAgent

__all__ = ["DebaterAgent", "FactCheckerAgent", "ModeratorAgent"]
