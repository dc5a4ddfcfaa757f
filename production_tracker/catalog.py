"""Stage catalog: immutable reference data injected into the engine."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .domain import Client, LineManager, OrderStage, StageDefinition, User, UserRole
from .exceptions import InvalidQuantityError, UnknownReferenceError, UnknownStageError


class StageCatalog:
    """Lookup facade over stage definitions, line managers, clients and users.

    Instances are built once from plain sequences and never mutated, so the
    same catalog can be shared between the scheduler, the status evaluator
    and the presentation layer.
    """

    def __init__(
        self,
        stages: Iterable[StageDefinition],
        *,
        line_managers: Iterable[LineManager] = (),
        clients: Iterable[Client] = (),
        users: Iterable[User] = (),
    ) -> None:
        self._stages: Dict[str, StageDefinition] = {}
        for stage in stages:
            if stage.id in self._stages:
                raise ValueError(f"Duplicate stage id {stage.id!r} in catalog")
            self._stages[stage.id] = stage
        self._line_managers: Dict[str, LineManager] = {lm.id: lm for lm in line_managers}
        self._clients: Dict[str, Client] = {client.id: client for client in clients}
        self._users: Dict[str, User] = {user.id: user for user in users}

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    @property
    def stages(self) -> List[StageDefinition]:
        return list(self._stages.values())

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._stages

    def stage(self, stage_id: str) -> StageDefinition:
        try:
            return self._stages[stage_id]
        except KeyError:
            raise UnknownStageError(stage_id) from None

    def tier_days_for(self, stage_id: str, quantity: float) -> int:
        """Return the estimated days a stage takes for the given quantity.

        The first tier whose ``max_units`` covers the quantity wins; quantities
        beyond every threshold use the last (overflow) tier.
        """

        stage = self.stage(stage_id)
        if quantity <= 0:
            raise InvalidQuantityError(
                f"Quantity must be positive for a tier lookup, got {quantity!r}"
            )
        for tier in stage.tiers:
            if tier.max_units >= quantity:
                return tier.days
        return stage.tiers[-1].days

    def stage_name(self, order_stage: OrderStage) -> str:
        if order_stage.custom_name:
            return order_stage.custom_name
        definition = self._stages.get(order_stage.stage_id)
        return definition.name if definition else order_stage.stage_id

    # ------------------------------------------------------------------
    # Line managers
    # ------------------------------------------------------------------
    @property
    def line_managers(self) -> List[LineManager]:
        return list(self._line_managers.values())

    def line_manager(self, line_manager_id: str) -> LineManager:
        try:
            return self._line_managers[line_manager_id]
        except KeyError:
            raise UnknownReferenceError(
                f"Unknown line manager id: {line_manager_id!r}"
            ) from None

    def line_managers_for(self, stage_id: str) -> List[LineManager]:
        self.stage(stage_id)
        return [lm for lm in self._line_managers.values() if stage_id in lm.eligible_stage_ids]

    def is_eligible(self, line_manager_id: str, stage_id: str) -> bool:
        manager = self._line_managers.get(line_manager_id)
        return manager is not None and stage_id in manager.eligible_stage_ids

    def line_manager_name(self, line_manager_id: str, default: str = "Unassigned") -> str:
        manager = self._line_managers.get(line_manager_id)
        return manager.name if manager else default

    # ------------------------------------------------------------------
    # Clients and users
    # ------------------------------------------------------------------
    @property
    def clients(self) -> List[Client]:
        return list(self._clients.values())

    def client(self, client_id: str) -> Client:
        try:
            return self._clients[client_id]
        except KeyError:
            raise UnknownReferenceError(f"Unknown client id: {client_id!r}") from None

    def client_name(self, client_id: str) -> str:
        client = self._clients.get(client_id)
        return client.name if client else client_id

    @property
    def users(self) -> List[User]:
        return list(self._users.values())

    def user(self, user_id: str) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise UnknownReferenceError(f"Unknown user id: {user_id!r}") from None

    def find_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def user_name(self, user_id: str, default: str = "Unknown") -> str:
        user = self._users.get(user_id)
        return user.name if user else default

    def users_with_role(self, role: UserRole) -> List[User]:
        return [user for user in self._users.values() if user.role == role]


__all__ = ["StageCatalog"]
