"""
Admin Router - runtime configuration and endpoint maintenance.

Protected by the X-Admin-Key header (see auth.verify_admin).
"""

import logging

from fastapi import APIRouter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# Re-export ConfigUpdate for any external consumers
from .models import ConfigUpdate

# Import sub-modules to register their routes on the shared router
from . import status
