"""Django settings for the turnout project.

Each module covers one concern and reads its values from the environment via python-decouple.
"""

from .base import *  # noqa: F401,F403
from .celery import *  # noqa: F401,F403
from .email import *  # noqa: F401,F403
from .ninja import *  # noqa: F401,F403
from .observability import *  # noqa: F401,F403
from .stripe import *  # noqa: F401,F403
