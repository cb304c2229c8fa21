"""simsync - Live simulation sync and blockage schedule codec for the logistics dashboard."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysimsync")
except PackageNotFoundError:
    __version__ = "0+local"
from simsync._transport import ConnectionState, FrameTransport
from simsync.client import SimulationSyncClient
from simsync.config import SimSyncConfig
from simsync.dispatcher import StateDispatcher
from simsync.exceptions import (
    BrokerError,
    ConnectionStateError,
    FrameDecodeError,
    HeartbeatTimeoutError,
    HttpTransportError,
    MalformedLineError,
    MalformedTokenError,
    NotConnectedError,
    ScheduleError,
    SimSyncConfigError,
    SimSyncError,
    SubscriptionConflictError,
)
from simsync.models import (
    BlockageRecord,
    GridPoint,
    ReferenceAnchor,
    SimulationInfo,
    SimulationState,
    SimulationStatus,
)
from simsync.registry import SubscriptionRecord, SubscriptionRegistry, TopicScheme
from simsync.schedule import (
    MapBounds,
    decode_blockage_line,
    decode_offset,
    encode_blockage_line,
    encode_offset,
    parse_blockage_schedule,
    read_blockage_file,
    template_blockage_schedule,
)
from simsync.state.store import SnapshotStore

__all__ = [
    "__version__",
    "BlockageRecord",
    "BrokerError",
    "ConnectionState",
    "ConnectionStateError",
    "FrameDecodeError",
    "FrameTransport",
    "GridPoint",
    "HeartbeatTimeoutError",
    "HttpTransportError",
    "MalformedLineError",
    "MalformedTokenError",
    "MapBounds",
    "NotConnectedError",
    "ReferenceAnchor",
    "ScheduleError",
    "SimSyncConfig",
    "SimSyncConfigError",
    "SimSyncError",
    "SimulationInfo",
    "SimulationState",
    "SimulationStatus",
    "SimulationSyncClient",
    "SnapshotStore",
    "StateDispatcher",
    "SubscriptionConflictError",
    "SubscriptionRecord",
    "SubscriptionRegistry",
    "TopicScheme",
    "decode_blockage_line",
    "decode_offset",
    "encode_blockage_line",
    "encode_offset",
    "parse_blockage_schedule",
    "read_blockage_file",
    "template_blockage_schedule",
]
