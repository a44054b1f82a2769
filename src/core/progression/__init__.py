"""맵 진행 시스템 Core 패키지"""

from src.core.progression.content import load_graph
from src.core.progression.dialog import DialogState, DialogTransition
from src.core.progression.enums import (
    ConnectionStatus,
    DialogStep,
    EdgeKind,
    MapStatus,
    UnlockMode,
)
from src.core.progression.errors import (
    ConfigurationError,
    DialogTransitionError,
    ProgressRecordNotFoundError,
    RemoteSyncError,
)
from src.core.progression.graph import GraphIndex, MapConnection, Requirement
from src.core.progression.models import (
    MapConfig,
    MapRef,
    NPCProgress,
    NpcConfig,
    ProgressSnapshot,
    UnlockPolicy,
    WorldConfig,
)
from src.core.progression.reconciler import reconcile
from src.core.progression.resolver import (
    add_dependency_free_maps,
    complete_npc,
    compute_initial_unlock,
    initial_unlocked_maps,
    predict_unlocked_map,
    update_dialog,
)
from src.core.progression.store import ProgressStore

__all__ = [
    # enums
    "UnlockMode",
    "DialogStep",
    "MapStatus",
    "ConnectionStatus",
    "EdgeKind",
    # errors
    "ConfigurationError",
    "RemoteSyncError",
    "ProgressRecordNotFoundError",
    "DialogTransitionError",
    # models
    "MapRef",
    "WorldConfig",
    "NpcConfig",
    "MapConfig",
    "UnlockPolicy",
    "NPCProgress",
    "ProgressSnapshot",
    "ProgressStore",
    "DialogState",
    "DialogTransition",
    # graph
    "GraphIndex",
    "MapConnection",
    "Requirement",
    "load_graph",
    # resolver / reconciler
    "compute_initial_unlock",
    "initial_unlocked_maps",
    "add_dependency_free_maps",
    "complete_npc",
    "predict_unlocked_map",
    "update_dialog",
    "reconcile",
]
