"""Pytest configuration and fixtures for formation engine tests."""

import pytest

from formation.models import (
    Agent,
    AgentAttributes,
    Availability,
    Formation,
    Position,
    Slot,
)


def build_agent(
    agent_id: str,
    role_id: str = "cm",
    x: float = 50.0,
    y: float = 50.0,
    *,
    name: str = "",
    form: str = "Average",
    morale: str = "Okay",
    status: str = "Available",
    **attributes,
) -> Agent:
    return Agent(
        id=agent_id,
        role_id=role_id,
        position=Position(x, y),
        name=name,
        attributes=AgentAttributes(**attributes),
        form=form,
        morale=morale,
        availability=Availability(status=status),
    )


def build_slot(slot_id: str, role: str = "MF", preferred_roles=(), x=None, y=None) -> Slot:
    position = Position(x, y) if x is not None and y is not None else None
    return Slot(id=slot_id, role=role, preferred_roles=tuple(preferred_roles), position=position)


@pytest.fixture
def make_agent():
    """Factory for agents: make_agent("a1", "cf", 50, 50, shooting=80)."""
    return build_agent


@pytest.fixture
def make_slot():
    return build_slot


@pytest.fixture
def make_formation():
    def _make(*slots: Slot, formation_id: str = "f1", name: str = "Test") -> Formation:
        return Formation(id=formation_id, name=name, slots=tuple(slots))

    return _make


@pytest.fixture
def striker(make_agent):
    """A strong, in-form centre forward."""
    return make_agent(
        "striker",
        "cf",
        80,
        50,
        name="Striker",
        form="Excellent",
        morale="Good",
        speed=90,
        shooting=85,
        passing=60,
    )


@pytest.fixture
def forward_slot(make_slot):
    return make_slot("fw1", "FW", ("cf", "tf"))


@pytest.fixture
def two_slot_formation(make_agent, make_slot, make_formation):
    """Agent X suits slot 1 (keeper), agent Y suits slot 2 (striker)."""
    keeper = make_agent("X", "gk", 5, 50, name="Keeper", positioning=90, reflexes=90, diving=90, handling=90)
    forward = make_agent("Y", "cf", 80, 50, name="Forward", shooting=90, speed=90, dribbling=85, finishing=90)
    formation = make_formation(
        make_slot("1", "GK", ("gk",)),
        make_slot("2", "FW", ("cf",)),
    )
    return [keeper, forward], formation
