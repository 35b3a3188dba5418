from typing import Any

from fieldrec.core.membership import MembershipProvider
from fieldrec.schemas.recording import Permissions


class PermissionEvaluator:
    def __init__(self, membership: MembershipProvider):
        self.membership = membership

    def get_user_permissions(self, recording, user: Any) -> Permissions:
        """What ``user`` may do with an already visible ``recording``.

        Membership of the owning group grants everything. Seeing a recording
        through a device or the public flag grants nothing.
        """
        # TODO: differentiate view/tag rights once public recordings get their own policy.
        if recording.group_id in self.membership.group_ids_for(user):
            return Permissions(
                can_view=True, can_delete=True, can_tag=True, can_update=True
            )
        return Permissions()
