"""Default reference data for the garment production line."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .catalog import StageCatalog
from .domain import Client, LineManager, StageDefinition, StageTier, User, UserRole


def _stage(stage_id: str, name: str, tiers: Sequence[Tuple[int, int]]) -> StageDefinition:
    return StageDefinition(
        id=stage_id,
        name=name,
        tiers=tuple(StageTier(max_units=max_units, days=days) for max_units, days in tiers),
    )


def default_stages() -> List[StageDefinition]:
    return [
        _stage("procurement", "Procurement", [(3333, 3), (6666, 7), (10000, 10)]),
        _stage("washing", "Washing", [(5000, 1), (10000, 2)]),
        _stage("ironing", "Ironing", [(5000, 1), (10000, 2)]),
        _stage("cutting", "Cutting", [(3333, 1), (6666, 2), (10000, 3)]),
        _stage("sewing", "Sewing", [(2000, 1), (5000, 3), (10000, 5)]),
        _stage("quality-check", "Quality Check", [(3333, 1), (6666, 2), (10000, 3)]),
        _stage("packing", "Packing", [(3333, 1), (6666, 2), (10000, 3)]),
    ]


def default_line_managers() -> List[LineManager]:
    assignments = [
        ("rajesh-mehta", "Rajesh Mehta", "procurement"),
        ("priya-sharma", "Priya Sharma", "procurement"),
        ("amit-kumar", "Amit Kumar", "washing"),
        ("sneha-patel", "Sneha Patel", "washing"),
        ("vikram-singh", "Vikram Singh", "ironing"),
        ("anjali-reddy", "Anjali Reddy", "ironing"),
        ("sudheer-rao", "Sudheer Rao", "cutting"),
        ("kavita-nair", "Kavita Nair", "cutting"),
        ("arjun-desai", "Arjun Desai", "sewing"),
        ("meera-iyer", "Meera Iyer", "sewing"),
        ("kiran-joshi", "Kiran Joshi", "quality-check"),
        ("deepa-menon", "Deepa Menon", "quality-check"),
        ("rahul-gupta", "Rahul Gupta", "packing"),
        ("pooja-verma", "Pooja Verma", "packing"),
    ]
    return [
        LineManager(id=manager_id, name=name, eligible_stage_ids=frozenset({stage_id}))
        for manager_id, name, stage_id in assignments
    ]


def default_clients() -> List[Client]:
    return [
        Client(id="purethrill-kids-garments", name="PureThrill Kids Garments"),
        Client(id="fantabulous-clothing", name="Fantabulous Clothing"),
        Client(id="kiddy-gems", name="Kiddy Gems"),
        Client(id="starworks", name="Starworks"),
    ]


def default_users() -> List[User]:
    return [
        User(id="kalpesh-patel", name="Kalpesh Patel", role=UserRole.PRODUCTION_MANAGER),
        User(id="rajesh-kumar", name="Rajesh Kumar", role=UserRole.ORDER_MANAGER),
        User(id="priya-menon", name="Priya Menon", role=UserRole.ORDER_MANAGER),
        User(id="operations-team", name="Operations Team", role=UserRole.OPERATIONS),
    ]


def default_catalog() -> StageCatalog:
    """Build the catalog used by the application when none is injected."""

    return StageCatalog(
        default_stages(),
        line_managers=default_line_managers(),
        clients=default_clients(),
        users=default_users(),
    )


__all__ = [
    "default_stages",
    "default_line_managers",
    "default_clients",
    "default_users",
    "default_catalog",
]
