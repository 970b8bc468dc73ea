from .document import parse, serialize, strip_identity_fields, force_sequence_shape
from .locator import list_script_commands, extension_for
from .model import JobDocument, ScriptCommandRef, EditSession, Connection
from .sessions import SessionRegistry
from .sync import SyncEngine
from .upload import UploadReconciler

__all__ = [
    "parse",
    "serialize",
    "strip_identity_fields",
    "force_sequence_shape",
    "list_script_commands",
    "extension_for",
    "JobDocument",
    "ScriptCommandRef",
    "EditSession",
    "Connection",
    "SessionRegistry",
    "SyncEngine",
    "UploadReconciler",
]
