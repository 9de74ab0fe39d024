"""Scenarios for generating realistic BTO launch data."""

from bto_alloc.scenarios.launch import LaunchScenario

__all__ = ["LaunchScenario"]
