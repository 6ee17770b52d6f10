"""
MCP Interface Layer exposing the trigger/memory engine through fastmcp.
"""
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from .models.core import Memory, Trigger
from .services.memory_engine import MemoryEngine, MemoryEngineError, build_engine
from .utils.config import config
from .utils.health_check import get_system_info
from .utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('Trigger Memory')

_engine: Optional[MemoryEngine] = None


def get_engine() -> MemoryEngine:
    """Build the engine on first use so importing this module has no side effects."""
    global _engine
    if _engine is None:
        _engine = build_engine(config)
    return _engine


def set_engine(engine: Optional[MemoryEngine]) -> None:
    global _engine
    _engine = engine


def trigger_view(trigger: Trigger, engine: MemoryEngine) -> Dict[str, Any]:
    view = trigger.to_dict()
    view['currentScore'] = engine.current_score(trigger)
    return view


def memory_view(memory: Memory) -> Dict[str, Any]:
    return memory.to_dict()


@mcp.tool()
async def get_context(message: str) -> str:
    """Build the user-context block for a message.

    Args:
        message: Incoming user message

    Returns:
        Context text, empty when nothing relevant is known
    """
    return await get_engine().get_context_for_message(message)


@mcp.tool()
async def scan_message(message: str) -> Dict[str, Any]:
    """Match a message against active triggers.

    Args:
        message: Incoming user message

    Returns:
        Activated triggers and the memories they surfaced
    """
    engine = get_engine()
    result = await engine.scan(message)
    return {
        'triggers': [trigger_view(t, engine) for t in result.triggers],
        'memories': [memory_view(m) for m in result.memories],
        'similarities': result.similarities,
    }


@mcp.tool()
async def extract_and_store(message: str) -> Optional[Dict[str, Any]]:
    """Extract and store memorable information from a message.

    Args:
        message: Raw user message

    Returns:
        Created memory and triggers, or None if nothing was extracted
    """
    engine = get_engine()
    outcome = await engine.extract_and_store(message)
    if outcome is None:
        return None
    return {
        'memory': memory_view(outcome.memory) if outcome.memory else None,
        'triggers': [trigger_view(t, engine) for t in outcome.triggers],
    }


@mcp.tool()
def create_trigger(word: str, category: str = 'autre', importance: int = 5) -> Dict[str, Any]:
    """Create a trigger keyword.

    Raises:
        Exception: If the word is empty
    """
    engine = get_engine()
    try:
        return trigger_view(engine.create_trigger(word, category, importance), engine)
    except ValueError as e:
        logger.error(f'Invalid trigger creation request: {e}')
        raise Exception(f'Trigger creation failed: {e}')


@mcp.tool()
def create_memory(content: str,
                  category: str = 'autre',
                  importance: int = 5,
                  trigger_ids: Optional[List[str]] = None) -> Dict[str, Any]:
    """Create a memory linked to existing triggers.

    Raises:
        Exception: If the content is empty
    """
    try:
        return memory_view(get_engine().create_memory(content, category, importance, trigger_ids or []))
    except ValueError as e:
        logger.error(f'Invalid memory creation request: {e}')
        raise Exception(f'Memory creation failed: {e}')


@mcp.tool()
def list_triggers(category: Optional[str] = None, active_only: bool = False) -> List[Dict[str, Any]]:
    """List triggers, optionally filtered by category or to active ones."""
    engine = get_engine()
    triggers = engine.get_active_triggers() if active_only else engine.list_triggers()
    if category:
        wanted = {t.id for t in engine.list_triggers(category)}
        triggers = [t for t in triggers if t.id in wanted]
    return [trigger_view(t, engine) for t in triggers]


@mcp.tool()
def list_memories(category: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    """List memories, newest first."""
    engine = get_engine()
    memories = sorted(engine.list_memories(category), key=lambda m: m.created_at, reverse=True)
    return [memory_view(m) for m in memories[:limit]]


@mcp.tool()
def delete_trigger(trigger_id: str) -> bool:
    """Delete a trigger and its links. Returns False if unknown."""
    return get_engine().delete_trigger(trigger_id)


@mcp.tool()
def delete_memory(memory_id: str) -> bool:
    """Delete a memory and its links. Returns False if unknown."""
    return get_engine().delete_memory(memory_id)


@mcp.tool()
def get_stats() -> Dict[str, Any]:
    """Aggregate trigger and memory statistics."""
    return get_engine().get_stats()


@mcp.tool()
def export_data() -> Dict[str, Any]:
    """Export every trigger and memory as one document."""
    return get_engine().export_data()


@mcp.tool()
def import_data(data: Dict[str, Any]) -> Dict[str, int]:
    """Merge an exported document into the engine.

    Raises:
        Exception: If the document is malformed
    """
    try:
        return get_engine().import_data(data)
    except MemoryEngineError as e:
        logger.error(f'Memory engine error in MCP import: {e}')
        raise Exception(f'Import failed: {e}')


@mcp.tool()
def clear_all() -> bool:
    """Delete every trigger and memory."""
    get_engine().clear_all()
    return True


@mcp.tool()
def health() -> Dict[str, Any]:
    """Report engine configuration and component health."""
    return get_system_info(get_engine())


if __name__ == '__main__':
    transport = config.mcp.transport
    host = config.mcp.host
    port = config.mcp.port
    mcp.run(transport=transport, host=host, port=port)
