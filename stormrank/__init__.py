"""
stormrank package
=================

Ranks canonical weather-event categories by the harm they cause
(fatalities, injuries, property damage, crop damage).

- The CLI entry point is in `stormrank/cli.py`.
- The pipeline driver (working set, dominant filter, shares) is in `stormrank/engine.py`.
- Dataset loading is in `stormrank/loader.py`.
"""

__version__ = '0.1.0'
