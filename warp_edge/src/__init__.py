"""
WARP charger (firmware v2) adapter package.

Exposes a TinkerForge WARP wallbox as a capability-typed charger. All device
communication runs over a shared publish/subscribe bus (MQTT topics with JSON
payloads); the bus client itself is owned by the hosting process.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-001)

TODO:
- None
"""
