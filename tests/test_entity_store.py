import json

from triggermem.models.core import Category
from triggermem.services.memory_engine import MemoryEngine
from triggermem.utils.storage import InMemoryStore, JsonFileStore

from conftest import StubOracle, assert_links_symmetric


def build(backend, clock, scoring_config, storage_config):
    return MemoryEngine(backend, StubOracle(), scoring_config, storage_config, clock)


def test_create_memory_links_both_directions(engine):
    piano = engine.create_trigger('piano', 'loisirs')
    jazz = engine.create_trigger('jazz', 'loisirs')

    memory = engine.create_memory('Il joue du piano jazz', 'loisirs', 6, [piano.id, jazz.id])

    assert memory.trigger_links == [piano.id, jazz.id]
    assert piano.memory_links == [memory.id]
    assert jazz.memory_links == [memory.id]
    assert_links_symmetric(engine)


def test_create_memory_ignores_unknown_trigger_ids(engine):
    memory = engine.create_memory('Il aime le jazz', trigger_ids=['nope'])

    assert memory.trigger_links == []
    assert_links_symmetric(engine)


def test_memory_importance_is_clamped(engine):
    assert engine.create_memory('a', importance=42).importance == 10
    assert engine.create_memory('b', importance=-3).importance == 1


def test_deleting_memory_removes_every_back_reference(engine):
    triggers = [engine.create_trigger(word) for word in ('piano', 'jazz', 'concert')]
    kept = engine.create_memory('Il va au concert', trigger_ids=[triggers[2].id])
    doomed = engine.create_memory('Il joue du jazz au piano', trigger_ids=[t.id for t in triggers])

    assert engine.delete_memory(doomed.id) is True

    assert engine.get_memory(doomed.id) is None
    assert all(doomed.id not in t.memory_links for t in engine.list_triggers())
    assert triggers[2].memory_links == [kept.id]
    assert_links_symmetric(engine)


def test_deleting_trigger_removes_every_back_reference(engine):
    piano = engine.create_trigger('piano')
    jazz = engine.create_trigger('jazz')
    first = engine.create_memory('Il joue du piano', trigger_ids=[piano.id])
    second = engine.create_memory('Il joue du jazz au piano', trigger_ids=[piano.id, jazz.id])

    assert engine.delete_trigger(piano.id) is True

    assert first.trigger_links == []
    assert second.trigger_links == [jazz.id]
    assert_links_symmetric(engine)


def test_deleting_unknown_ids_is_noop(engine, backend):
    backend.writes.clear()

    assert engine.delete_trigger('missing') is False
    assert engine.delete_memory('missing') is False
    assert backend.writes == []


def test_missing_keys_load_as_empty(engine):
    assert engine.list_triggers() == []
    assert engine.list_memories() == []


def test_corrupt_storage_loads_as_empty(clock, scoring_config, storage_config):
    backend = InMemoryStore({'triggers_v2': '{not json', 'memories_v2': '{"id": "x"}'})

    engine = build(backend, clock, scoring_config, storage_config)

    assert engine.list_triggers() == []
    assert engine.list_memories() == []


def test_malformed_records_are_skipped(clock, scoring_config, storage_config):
    backend = InMemoryStore({
        'triggers_v2': json.dumps([{'id': 't1', 'word': 'piano', 'score': 40}, {'id': 't2'}, 'garbage']),
        'memories_v2': json.dumps([{'id': 'm1', 'content': ''}]),
    })

    engine = build(backend, clock, scoring_config, storage_config)

    assert [t.id for t in engine.list_triggers()] == ['t1']
    assert engine.list_memories() == []


def test_load_repairs_asymmetric_and_dangling_links(clock, scoring_config, storage_config):
    backend = InMemoryStore({
        'triggers_v2': json.dumps([{'id': 't1', 'word': 'piano', 'synonyms': ['Piano', 'clavier'], 'memoryLinks': ['gone']}]),
        'memories_v2': json.dumps([{'id': 'm1', 'content': 'Il joue du piano', 'triggerLinks': ['t1', 'ghost']}]),
    })

    engine = build(backend, clock, scoring_config, storage_config)

    trigger = engine.get_trigger('t1')
    assert trigger.memory_links == ['m1']
    assert trigger.synonyms == ['clavier']
    assert engine.get_memory('m1').trigger_links == ['t1']
    assert_links_symmetric(engine)


def test_legacy_memories_are_migrated(clock, scoring_config, storage_config):
    legacy = [{'content': 'Il a un chien', 'category': 'famille', 'importance': 8}, {'content': '   '}]
    backend = InMemoryStore({'memories': json.dumps(legacy)})

    engine = build(backend, clock, scoring_config, storage_config)

    memories = engine.list_memories()
    assert len(memories) == 1
    assert memories[0].category == Category.FAMILY
    assert memories[0].importance == 8
    assert backend.get('memories_v2') is not None


def test_state_survives_reload_from_json_files(tmp_path, clock, scoring_config, storage_config):
    first = build(JsonFileStore(str(tmp_path)), clock, scoring_config, storage_config)
    trigger = first.create_trigger('Travail', 'travail', importance=7)
    memory = first.create_memory('Elle est infirmière', 'travail', 7, [trigger.id])
    first.activate(trigger.id)

    second = build(JsonFileStore(str(tmp_path)), clock, scoring_config, storage_config)

    reloaded = second.get_trigger(trigger.id)
    assert reloaded.to_dict() == trigger.to_dict()
    assert second.get_memory(memory.id).to_dict() == memory.to_dict()
    assert (tmp_path / 'triggers_v2.json').exists()


def test_clear_all_empties_tables_and_storage(engine, backend):
    trigger = engine.create_trigger('piano')
    engine.create_memory('Il joue du piano', trigger_ids=[trigger.id])

    engine.clear_all()

    assert engine.list_triggers() == []
    assert engine.list_memories() == []
    assert backend.get('triggers_v2') is None
    assert backend.get('memories_v2') is None
    assert backend.get('last_decay') is None


def test_non_finite_numbers_load_with_defaults(clock, scoring_config, storage_config):
    backend = InMemoryStore({
        'triggers_v2': '[{"id": "t1", "word": "piano", "score": Infinity, "usageCount": 1e400}]',
        'memories_v2': '[{"id": "m1", "content": "Il joue du piano", "importance": 1e400, "accessCount": -Infinity}]',
    })

    engine = build(backend, clock, scoring_config, storage_config)

    trigger = engine.get_trigger('t1')
    assert trigger.score == 0
    assert trigger.usage_count == 0
    memory = engine.get_memory('m1')
    assert memory.importance == 5
    assert memory.access_count == 0


def test_import_tolerates_non_finite_numbers(engine):
    result = engine.import_data({'version': 2, 'memories': [{'id': 'm1', 'content': 'x', 'importance': float('inf')}]})

    assert result == {'triggers': 0, 'memories': 1}
    assert engine.get_memory('m1').importance == 5


def test_string_valued_lists_are_ignored(clock, scoring_config, storage_config):
    backend = InMemoryStore({
        'triggers_v2': json.dumps([{'id': 't1', 'word': 'piano', 'synonyms': 'clavier', 'memoryLinks': 'm1'}]),
        'memories_v2': json.dumps([{'id': 'm1', 'content': 'Il joue du piano', 'triggerLinks': 't1'}]),
    })

    engine = build(backend, clock, scoring_config, storage_config)

    trigger = engine.get_trigger('t1')
    assert trigger.synonyms == []
    assert trigger.memory_links == []
    assert engine.get_memory('m1').trigger_links == []
