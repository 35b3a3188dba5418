from typing import Any

from fieldrec.core.logger import get_logger
from fieldrec.core.membership import MembershipProvider
from fieldrec.core.predicates import Eq, In, Or, Predicate

logger = get_logger(__name__)


class VisibilityResolver:
    """Builds the "may this user see it" predicate for recordings."""

    def __init__(self, membership: MembershipProvider):
        self.membership = membership

    def recordings_for(self, user: Any) -> Predicate:
        group_ids = self.membership.group_ids_for(user)
        device_ids = self.membership.device_ids_for(user)
        logger.debug(
            f"Visibility for {user!r}: {len(group_ids)} groups, {len(device_ids)} devices"
        )
        return Or(
            Eq("public", True),
            In("group_id", group_ids),
            In("device_id", device_ids),
        )
