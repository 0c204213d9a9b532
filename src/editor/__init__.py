"""편집 클라이언트. 모든 저장은 EditorCoordinator.request_save()를 거친다."""

from .api_client import ApiClient, ApiError
from .auth_gate import AuthGate, GateState
from .coordinator import EditorCoordinator, Saveable
from .notifier import Notifier, RecordingNotifier
from .session import RecordEditorSession, create_editor

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthGate",
    "GateState",
    "EditorCoordinator",
    "Saveable",
    "Notifier",
    "RecordingNotifier",
    "RecordEditorSession",
    "create_editor",
]
