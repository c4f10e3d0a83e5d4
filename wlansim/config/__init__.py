"""
wlansim.config - Scenario and configuration management

Provides YAML-based scenario parsing and the built-in presets.
"""

from .scenario import Scenario, load_scenario, scenario_from_dict
from .presets import PRESETS, adhoc_preset, infrastructure_preset

__all__ = [
    'Scenario',
    'load_scenario',
    'scenario_from_dict',
    'PRESETS',
    'adhoc_preset',
    'infrastructure_preset',
]
