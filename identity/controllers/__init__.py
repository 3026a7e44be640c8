"""
Request controllers.

Controllers take request data, call services and processes, and return a
``(data, status_code, headers)`` tuple for the route to render.
"""

from typing import Optional, Tuple

Response = Tuple[Optional[dict], int, dict]
