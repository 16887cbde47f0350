"""Pytest-based integration tests using pytest-homeassistant-custom-component.

Primary testing method: pytest-homeassistant-custom-component. The controller
is never contacted: ControllerClient's two requests are patched.

Tests:
    - Config flow validation
    - Options flow
    - Integration setup and unload
    - Entity creation and attributes
    - Service registration and service calls
    - Pattern storage

Usage:
    pytest test/test_integration_pytest.py -v
    pytest test/test_integration_pytest.py::test_config_flow_creates_entry -v
"""

from unittest.mock import patch

import pytest
from homeassistant import config_entries
from homeassistant.config_entries import ConfigEntryState
from homeassistant.const import STATE_OFF, STATE_ON
from homeassistant.data_entry_flow import FlowResultType
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import entity_registry as er
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.oelo_lights_zone.const import (
    DOMAIN,
    SERVICE_APPLY_EFFECT,
    SERVICE_CAPTURE_EFFECT,
    SERVICE_DELETE_EFFECT,
    SERVICE_LIST_EFFECTS,
    SERVICE_ON_AND_APPLY_EFFECT,
    SERVICE_RENAME_EFFECT,
)
from custom_components.oelo_lights_zone.errors import FailureReason
from custom_components.oelo_lights_zone.pattern_storage import storage_key
from custom_components.oelo_lights_zone.pattern_utils import parse_url_params
from custom_components.oelo_lights_zone.scheduling import HassScheduler

from test_helpers import CONTROLLER_IP, failed_status, status, zone_record

CLIENT = "custom_components.oelo_lights_zone.client.ControllerClient"
ZONES_OFF = status(zone_record(1, "off"), zone_record(2, "off"))
ZONE_1_MARCH = status(
    zone_record(1, "march", isOn=True, direction="R", speed=3, numberOfColors=2, colorStr="255&0&0&0&0&255"),
    zone_record(2, "off"),
)


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Load custom_components/oelo_lights_zone in every test."""
    yield


def zone_entity_id(hass, entry, zone):
    return er.async_get(hass).async_get_entity_id("light", DOMAIN, f"{entry.entry_id}_zone_{zone}")


async def setup_entry(hass, entry, fetch_result=ZONES_OFF):
    entry.add_to_hass(hass)
    with patch(f"{CLIENT}.async_fetch_status", return_value=fetch_result):
        assert await hass.config_entries.async_setup(entry.entry_id)
        await hass.async_block_till_done()


@pytest.mark.asyncio
async def test_config_flow_shows_form(hass):
    """Test config flow initialization."""
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})

    assert result["type"] is FlowResultType.FORM
    assert result["step_id"] == "user"
    assert result["errors"] == {}


@pytest.mark.asyncio
async def test_config_flow_creates_entry(hass):
    """A reachable controller creates an entry with default options."""
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})

    with patch(f"{CLIENT}.async_fetch_status", return_value=ZONES_OFF), patch(
        "custom_components.oelo_lights_zone.async_setup_entry", return_value=True
    ):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], {"ip_address": CONTROLLER_IP}
        )
        await hass.async_block_till_done()

    assert result["type"] is FlowResultType.CREATE_ENTRY
    assert result["title"] == f"Oelo {CONTROLLER_IP}"
    assert result["data"] == {"ip_address": CONTROLLER_IP}
    assert result["options"]["zones"] == [1, 2, 3, 4, 5, 6]


@pytest.mark.asyncio
async def test_config_flow_invalid_host(hass):
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})

    result = await hass.config_entries.flow.async_configure(result["flow_id"], {"ip_address": "not a host!"})

    assert result["type"] is FlowResultType.FORM
    assert result["errors"] == {"base": "invalid_ip"}


@pytest.mark.asyncio
async def test_config_flow_cannot_connect(hass):
    result = await hass.config_entries.flow.async_init(DOMAIN, context={"source": config_entries.SOURCE_USER})

    with patch(f"{CLIENT}.async_fetch_status", return_value=failed_status(FailureReason.CONNECTION_REFUSED)):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], {"ip_address": CONTROLLER_IP}
        )

    assert result["type"] is FlowResultType.FORM
    assert result["errors"] == {"base": "cannot_connect"}


@pytest.mark.asyncio
async def test_options_flow_zones(hass, mock_config_entry):
    """Zones are stored as sorted numbers; an empty selection is rejected."""
    mock_config_entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(mock_config_entry.entry_id)
    assert result["type"] is FlowResultType.FORM

    result = await hass.config_entries.options.async_configure(result["flow_id"], {"zones": []})
    assert result["type"] is FlowResultType.FORM
    assert result["errors"] == {"zones": "no_zones"}

    result = await hass.config_entries.options.async_configure(result["flow_id"], {"zones": ["3", "1"]})
    assert result["type"] is FlowResultType.CREATE_ENTRY
    assert mock_config_entry.options["zones"] == [1, 3]


@pytest.mark.asyncio
async def test_integration_setup(hass, mock_config_entry):
    """One light entity per configured zone, driven by the controller status."""
    await setup_entry(hass, mock_config_entry, ZONE_1_MARCH)

    assert mock_config_entry.state is ConfigEntryState.LOADED

    zone_1 = hass.states.get(zone_entity_id(hass, mock_config_entry, 1))
    zone_2 = hass.states.get(zone_entity_id(hass, mock_config_entry, 2))
    assert zone_1.state == STATE_ON
    assert zone_2.state == STATE_OFF
    assert zone_1.attributes["zone"] == 1
    assert zone_1.attributes["controller_ip"] == CONTROLLER_IP
    assert zone_1.attributes["current_pattern"] == "march"
    assert zone_1.attributes["effect"] == "American Liberty: Marching with Red White and Blue"
    assert len(zone_1.attributes["effect_list"]) == 65

    assert await hass.config_entries.async_unload(mock_config_entry.entry_id)
    assert mock_config_entry.state is ConfigEntryState.NOT_LOADED
    assert mock_config_entry.entry_id not in hass.data[DOMAIN]


@pytest.mark.asyncio
async def test_services_registered(hass, mock_config_entry):
    """Test that services are registered."""
    await setup_entry(hass, mock_config_entry)

    for service in (
        SERVICE_CAPTURE_EFFECT,
        SERVICE_APPLY_EFFECT,
        SERVICE_ON_AND_APPLY_EFFECT,
        SERVICE_RENAME_EFFECT,
        SERVICE_DELETE_EFFECT,
        SERVICE_LIST_EFFECTS,
    ):
        assert hass.services.has_service(DOMAIN, service)

    assert await hass.config_entries.async_unload(mock_config_entry.entry_id)


@pytest.mark.asyncio
async def test_capture_rename_and_list(hass, hass_storage, mock_config_entry):
    """Capture the running pattern, rename it and list it back."""
    await setup_entry(hass, mock_config_entry)
    entity_id = zone_entity_id(hass, mock_config_entry, 1)

    with patch(f"{CLIENT}.async_fetch_status", return_value=ZONE_1_MARCH):
        await hass.services.async_call(
            DOMAIN, SERVICE_CAPTURE_EFFECT, {"entity_id": entity_id}, blocking=True
        )
    await hass.services.async_call(
        DOMAIN,
        SERVICE_RENAME_EFFECT,
        {"entity_id": entity_id, "effect_name": "march_dirR_spd3_2colors", "new_name": "Parade"},
        blocking=True,
    )
    await hass.async_block_till_done()

    response = await hass.services.async_call(
        DOMAIN, SERVICE_LIST_EFFECTS, {"entity_id": entity_id}, blocking=True, return_response=True
    )
    assert response["zone"] == 1
    assert response["effects"] == ["Parade"]
    assert response["patterns"][0]["id"] == "march_dirR_spd3_2colors"
    assert response["last_captured"] == "Parade"

    saved = hass_storage[storage_key(mock_config_entry.entry_id, 1)]["data"]
    assert [p["name"] for p in saved["patterns"]] == ["Parade"]

    state = hass.states.get(entity_id)
    assert state.attributes["effect_list"][0] == "Parade"

    assert await hass.config_entries.async_unload(mock_config_entry.entry_id)


@pytest.mark.asyncio
async def test_capture_zone_off_raises(hass, mock_config_entry):
    await setup_entry(hass, mock_config_entry)
    entity_id = zone_entity_id(hass, mock_config_entry, 1)

    with patch(f"{CLIENT}.async_fetch_status", return_value=ZONES_OFF), pytest.raises(HomeAssistantError):
        await hass.services.async_call(
            DOMAIN, SERVICE_CAPTURE_EFFECT, {"entity_id": entity_id}, blocking=True
        )

    assert await hass.config_entries.async_unload(mock_config_entry.entry_id)


@pytest.mark.asyncio
async def test_apply_effect_sends_command(hass, mock_config_entry):
    await setup_entry(hass, mock_config_entry)
    entity_id = zone_entity_id(hass, mock_config_entry, 2)

    with patch(f"{CLIENT}.async_send_command") as send:
        send.return_value.success = True
        await hass.services.async_call(
            DOMAIN,
            SERVICE_APPLY_EFFECT,
            {"entity_id": entity_id, "effect_name": "Birthdays: Birthday Confetti"},
            blocking=True,
        )
        await hass.async_block_till_done()

    params = parse_url_params(send.call_args.args[0])
    assert params["patternType"] == "river"
    assert params["zones"] == "2"

    state = hass.states.get(entity_id)
    assert state.state == STATE_ON
    assert state.attributes["effect"] == "Birthdays: Birthday Confetti"

    assert await hass.config_entries.async_unload(mock_config_entry.entry_id)


@pytest.mark.asyncio
async def test_light_turn_off(hass, mock_config_entry):
    await setup_entry(hass, mock_config_entry, ZONE_1_MARCH)
    entity_id = zone_entity_id(hass, mock_config_entry, 1)

    with patch(f"{CLIENT}.async_send_command") as send:
        send.return_value.success = True
        await hass.services.async_call("light", "turn_off", {"entity_id": entity_id}, blocking=True)
        await hass.async_block_till_done()

    assert parse_url_params(send.call_args.args[0])["patternType"] == "off"
    assert hass.states.get(entity_id).state == STATE_OFF

    assert await hass.config_entries.async_unload(mock_config_entry.entry_id)


@pytest.mark.asyncio
async def test_failed_platform_setup_stops_zones(hass):
    """Zones started during setup are stopped again when platform setup fails."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        data={"ip_address": CONTROLLER_IP},
        options={"zones": ["1"], "auto_poll": True, "poll_interval": 300},
        title="Oelo Lights Test",
    )
    entry.add_to_hass(hass)

    with patch(f"{CLIENT}.async_fetch_status", return_value=ZONES_OFF), patch(
        "homeassistant.config_entries.ConfigEntries.async_forward_entry_setups",
        side_effect=RuntimeError("platform failed"),
    ), patch.object(HassScheduler, "shutdown", autospec=True, side_effect=HassScheduler.shutdown) as shutdown:
        assert not await hass.config_entries.async_setup(entry.entry_id)
        await hass.async_block_till_done()

    assert entry.state is ConfigEntryState.SETUP_ERROR
    assert entry.entry_id not in hass.data.get(DOMAIN, {})
    shutdown.assert_called_once()
