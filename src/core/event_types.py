"""이벤트 유형 상수"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # === 진행 (Resolver / Reconciler) ===
    NPC_COMPLETED = "npc_completed"
    NPC_UNLOCKED = "npc_unlocked"
    MAP_UNLOCKED = "map_unlocked"
    PROGRESS_INITIALIZED = "progress_initialized"
    PROGRESS_SYNCED = "progress_synced"
    PROGRESS_RESET = "progress_reset"
    POLICY_CHANGED = "policy_changed"

    # === 대화 ===
    DIALOG_OPENED = "dialog_opened"
    DIALOG_STEP_CHANGED = "dialog_step_changed"
    DIALOG_CLOSED = "dialog_closed"
    MAP_TRAVEL_REQUESTED = "map_travel_requested"

    # === 원격 동기화 ===
    PROGRESS_LOADED = "progress_loaded"
    PROGRESS_SAVED = "progress_saved"
    REMOTE_SYNC_FAILED = "remote_sync_failed"

    # === 인증 ===
    LOGGED_IN = "logged_in"
    LOGGED_OUT = "logged_out"
