import asyncio

from triggermem import mcp_interface
from triggermem.utils.health_check import check_health, get_health_status, get_system_info


def test_engine_is_injectable(engine):
    mcp_interface.set_engine(engine)
    try:
        assert mcp_interface.get_engine() is engine
    finally:
        mcp_interface.set_engine(None)


def test_trigger_view_includes_current_score(engine, clock):
    trigger = engine.create_trigger('piano', 'loisirs')
    clock.advance(days=5)

    view = mcp_interface.trigger_view(trigger, engine)

    assert view['word'] == 'piano'
    assert view['category'] == 'loisirs'
    assert view['score'] == 60
    assert view['currentScore'] == 50


def test_memory_view_is_serializable(engine):
    memory = engine.create_memory('Il joue du piano', 'loisirs', 6)

    view = mcp_interface.memory_view(memory)

    assert view['content'] == 'Il joue du piano'
    assert view['importance'] == 6
    assert isinstance(view['createdAt'], str)


def test_health_reports_storage_and_oracle(engine):
    status = get_health_status(engine)

    assert status['storage']['healthy'] is True
    assert status['oracle']['healthy'] is True
    assert check_health(engine) is True
    assert get_system_info(engine)['configuration']['archive_threshold'] == 20


def test_context_tool_keeps_recent_memories_for_blank_message(engine):
    engine.create_memory('Elle a un chat', 'famille', 8)
    tool = getattr(mcp_interface.get_context, 'fn', mcp_interface.get_context)

    mcp_interface.set_engine(engine)
    try:
        text = asyncio.run(tool('   '))
    finally:
        mcp_interface.set_engine(None)

    assert 'Elle a un chat' in text
    assert text == asyncio.run(engine.get_context_for_message('   '))
