"""Role-based participant classification."""

from collections.abc import Iterable


class RoleClassifier:
    """Classifies participants as external (monitored) or internal (responder).

    A role set that matches both configurations is internal: a staff member
    who also holds a client-facing role still answers on the team's behalf.
    """

    def __init__(
        self, external_roles: Iterable[str], internal_roles: Iterable[str]
    ) -> None:
        self._external_roles = frozenset(external_roles)
        self._internal_roles = frozenset(internal_roles)

    @property
    def has_external_roles(self) -> bool:
        return bool(self._external_roles)

    def is_internal(self, roles: Iterable[str]) -> bool:
        return not self._internal_roles.isdisjoint(roles)

    def is_external(self, roles: Iterable[str]) -> bool:
        roles = frozenset(roles)
        if self.is_internal(roles):
            return False
        return not self._external_roles.isdisjoint(roles)
