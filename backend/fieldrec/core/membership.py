from typing import Any, Iterable, Mapping, Protocol


class MembershipProvider(Protocol):
    def group_ids_for(self, user: Any) -> set: ...

    def device_ids_for(self, user: Any) -> set: ...


def user_key(user: Any):
    return getattr(user, "id", user)


class StaticMembershipProvider:
    """Membership answered from in-memory mappings keyed by user id."""

    def __init__(
        self,
        groups: Mapping[Any, Iterable[int]] | None = None,
        devices: Mapping[Any, Iterable[int]] | None = None,
    ):
        self.groups = {k: set(v) for k, v in (groups or {}).items()}
        self.devices = {k: set(v) for k, v in (devices or {}).items()}

    def group_ids_for(self, user: Any) -> set:
        return set(self.groups.get(user_key(user), ()))

    def device_ids_for(self, user: Any) -> set:
        return set(self.devices.get(user_key(user), ()))

    def add_to_group(self, user: Any, group_id: int) -> None:
        self.groups.setdefault(user_key(user), set()).add(group_id)

    def add_to_device(self, user: Any, device_id: int) -> None:
        self.devices.setdefault(user_key(user), set()).add(device_id)
