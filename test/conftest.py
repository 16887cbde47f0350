"""Pytest configuration and fixtures for Oelo Lights Zone integration tests.

Uses pytest-homeassistant-custom-component as the primary testing framework
for the Home Assistant glue. The zone engine (client, store, poller,
verification) is tested against the fakes in test_helpers so no network or
real timers are used.

Fixtures:
    hass: Home Assistant instance (from pytest-homeassistant-custom-component)
    mock_config_entry: Mock configuration entry for testing
    scheduler: FakeScheduler with a manual clock
    fake_client: FakeClient answering with canned status results
    catalog: Small in-memory PatternCatalog
"""

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.oelo_lights_zone.catalog import PatternCatalog
from custom_components.oelo_lights_zone.const import DOMAIN
from test_helpers import CONTROLLER_IP, FakeClient, FakeScheduler, status, zone_record


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient(status(zone_record(1, "off"), zone_record(2, "off")))


@pytest.fixture
def catalog() -> PatternCatalog:
    return PatternCatalog(
        {
            "Candy Cane": "patternType=river&num_zones=1&zones={zone}&num_colors=2&colors=255,0,0,255,255,255,&direction=R&speed=3&gap=0&other=0&pause=0",
            "Warm White": "patternType=stationary&num_zones=1&zones={zone}&num_colors=1&colors=255,200,150,&direction=F&speed=0&gap=0&other=0&pause=0",
        }
    )


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Create a mock configuration entry for testing.

    Returns:
        MockConfigEntry: Mock config entry with polling disabled so no timers linger
    """
    return MockConfigEntry(
        domain=DOMAIN,
        data={
            "ip_address": CONTROLLER_IP,
        },
        options={
            "zones": ["1", "2"],
            "poll_interval": 300,
            "auto_poll": False,
            "max_leds": 500,
            "spotlight_plan_lights": "1,2,3,4,8,9,10,11",
            "verify_commands": False,
            "verification_retries": 3,
            "verification_delay": 2,
            "verification_timeout": 30,
            "command_timeout": 10,
            "debug_logging": False,
        },
        title="Oelo Lights Test",
        entry_id="test_oelo_entry_1",
    )
