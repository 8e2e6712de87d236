# Import every model so relationship targets resolve and Alembic sees the tables
from helpflow.models.profile import Profile  # noqa: F401
from helpflow.models.demo_message import DemoMessage  # noqa: F401
