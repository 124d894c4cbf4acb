from burrow.core.agent import AgentLoop
from burrow.core.persona import PersonaProfileUpdater, ProfileUpdater
from burrow.core.state import TurnOutcome

__all__ = ["AgentLoop", "PersonaProfileUpdater", "ProfileUpdater", "TurnOutcome"]
