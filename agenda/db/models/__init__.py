"""ORM models exposed for metadata discovery."""
from agenda.db.models.agenda_block import AgendaBlock
from agenda.db.models.agent_action_log import AgentActionLog
from agenda.db.models.project import Project
from agenda.db.models.user import User

__all__ = [
    "AgendaBlock",
    "AgentActionLog",
    "Project",
    "User",
]
