"""Assistant Kit package."""

from .agent.contract import AssistantContract, MethodSpec
from .agent.proxy import Assistant
from .agent.registry import ToolRegistry, ToolSpec
from .config import AssistantConfig, ChunkingConfig, MemoryConfig, RetrievalConfig
from .errors import AssistantError, ErrorCategory
from .memory.window import ChatMemoryStore, ChatMemoryWindow
from .output.shapes import FieldSpec, ParsedValue, RecordShape, ValueKind
from .rag import RagPipeline

__all__ = [
    "Assistant",
    "AssistantConfig",
    "AssistantContract",
    "AssistantError",
    "ChatMemoryStore",
    "ChatMemoryWindow",
    "ChunkingConfig",
    "ErrorCategory",
    "FieldSpec",
    "MemoryConfig",
    "MethodSpec",
    "ParsedValue",
    "RagPipeline",
    "RecordShape",
    "RetrievalConfig",
    "ToolRegistry",
    "ToolSpec",
    "ValueKind",
]
