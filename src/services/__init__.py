"""Business logic services used by handlers.

Handlers build services lazily through handlers.common.get_services, so
importing this package pulls in no database or AWS clients.
"""

# Do NOT import services here - wiring lives in handlers.common
