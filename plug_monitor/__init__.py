"""
Smart-plug power monitor package.

Polls a Tuya smart plug for current, voltage and power readings, persists
every sample, pushes live updates to WebSocket observers and serves
hourly/daily rollups for the dashboard charts.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-001)

TODO:
- None
"""

__version__ = "0.1.0"
