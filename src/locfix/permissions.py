"""Location permission state."""

import logging
from typing import Callable, Optional

from .config import LOCATION_AUTHORIZATION, LOCATION_SERVICES_ENABLED
from .interfaces import PermissionAuthority
from .models import AuthorizationStatus

logger = logging.getLogger(__name__)


class ConfigPermissionAuthority(PermissionAuthority):
    """
    Permission authority driven by configuration.

    The initial status comes from LOCATION_AUTHORIZATION. Requesting
    authorization while undetermined grants it and reports the change through
    `on_change`; an explicit denial is never overturned by a request.
    """

    def __init__(
        self,
        status: str = LOCATION_AUTHORIZATION,
        services_enabled: bool = LOCATION_SERVICES_ENABLED,
    ):
        try:
            self.status = AuthorizationStatus(status)
        except ValueError:
            logger.warning(f"Unknown authorization status '{status}', treating as undetermined")
            self.status = AuthorizationStatus.UNDETERMINED
        self._services_enabled = services_enabled
        self.on_change: Optional[Callable[[AuthorizationStatus], None]] = None

    def authorization_status(self) -> AuthorizationStatus:
        return self.status

    def request_authorization(self):
        if self.status != AuthorizationStatus.UNDETERMINED:
            return
        self.status = AuthorizationStatus.AUTHORIZED
        logger.info("Location authorization granted")
        if self.on_change:
            self.on_change(self.status)

    def services_enabled(self) -> bool:
        return self._services_enabled
