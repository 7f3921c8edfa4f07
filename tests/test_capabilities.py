"""Tests for host capability probing."""

from dataclasses import FrozenInstanceError
from unittest.mock import Mock, PropertyMock

import pytest

from reminder_worker.core.capabilities import CapabilitySet, probe
from reminder_worker.errors import UnsupportedCapability
from reminder_worker.services import InMemoryNotificationSurface


def test_nothing_available_outside_event_loop():
    capabilities = probe()

    assert capabilities == CapabilitySet()


def test_surface_gives_notifications():
    assert probe(surface=InMemoryNotificationSurface()).notifications is True
    assert probe(surface=InMemoryNotificationSurface(available=False)).notifications is False


def test_job_queue_gives_periodic_and_delayed():
    capabilities = probe(job_queue=Mock())

    assert capabilities.periodic_sync is True
    assert capabilities.delayed_scheduling is True


@pytest.mark.asyncio
async def test_running_loop_gives_delayed_scheduling():
    capabilities = probe()

    assert capabilities.delayed_scheduling is True
    assert capabilities.periodic_sync is False


def test_broken_surface_probes_as_absent():
    surface = Mock()
    type(surface).available = PropertyMock(side_effect=RuntimeError("permission query failed"))

    assert probe(surface=surface).notifications is False


def test_capabilities_are_immutable():
    capabilities = CapabilitySet(notifications=True)

    with pytest.raises(FrozenInstanceError):
        capabilities.notifications = False


def test_require():
    capabilities = CapabilitySet(notifications=True)

    capabilities.require("notifications")
    with pytest.raises(UnsupportedCapability):
        capabilities.require("periodic_sync")
    with pytest.raises(UnsupportedCapability):
        capabilities.require("teleportation")


def test_describe():
    described = CapabilitySet(notifications=True).describe()

    assert described == "notifications=yes, periodic_sync=no, delayed_scheduling=no"
