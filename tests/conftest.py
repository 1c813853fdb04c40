"""Shared fixtures for the land engine tests."""

import pytest

from lands.config import LandSettings
from lands.systems.event_log import EventLog
from lands.systems.land_manager import LandManager
from lands.systems.selection import SelectionManager
from lands.tools.handlers import LandCommandHandlers

from tests.helpers import OWNER, cube


@pytest.fixture
def settings() -> LandSettings:
    return LandSettings(save_dir="unused", history_dir="unused")


@pytest.fixture
def manager(settings) -> LandManager:
    return LandManager(settings)


@pytest.fixture
def delegated_manager() -> LandManager:
    return LandManager(LandSettings(allow_delegated_management=True, history_dir="unused"))


@pytest.fixture
def home(manager):
    """Land 'Home' at (0,0,0)-(9,9,9), owned and selected by alice."""
    land = manager.create_land("Home", OWNER, cube(0, 0, 0, 9, 9, 9))
    manager.select_land_for_player(OWNER, "Home")
    return land


@pytest.fixture
def handlers(manager) -> LandCommandHandlers:
    return LandCommandHandlers(manager, SelectionManager(), EventLog())
