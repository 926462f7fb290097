"""
Services Package for Arena Relay.

HTTP collaborators: trigger delivery, result store and position directory.
"""

from arena_relay.services.api_client import ArenaApiClient
from arena_relay.services.workflow_client import WorkflowClient
from arena_relay.services.result_store import ResultStoreClient
from arena_relay.services.position_directory import PositionDirectory

__all__ = [
    "ArenaApiClient",
    "WorkflowClient",
    "ResultStoreClient",
    "PositionDirectory",
]
