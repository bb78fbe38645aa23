"""Pydantic schemas for canonical entities, results and remote payloads."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .review import *  # noqa: F403
