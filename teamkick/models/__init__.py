# SQLModel definitions - imported here to ensure metadata is populated.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .team import Team  # noqa: F401
from .team_member import TeamMember  # noqa: F401
from .match import Match  # noqa: F401
from .feedback import Feedback  # noqa: F401
