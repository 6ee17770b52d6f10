import asyncio

from triggermem.models.core import Category, ExtractedMemory, ExtractedTrigger, Extraction
from triggermem.services.synonyms import expand

from conftest import assert_links_symmetric


def extraction(*triggers, memory=None, important=True):
    return Extraction(important=important, memory=memory, triggers=list(triggers))


def test_unimportant_message_stores_nothing(engine, oracle, backend):
    oracle.extraction = extraction(ExtractedTrigger('piano'), memory=ExtractedMemory('Il joue du piano'), important=False)
    backend.writes.clear()

    result = asyncio.run(engine.extract_and_store('bonjour'))

    assert result is None
    assert engine.list_triggers() == []
    assert engine.list_memories() == []
    assert backend.writes == []


def test_oracle_failure_or_empty_reply_stores_nothing(engine, oracle, backend):
    backend.writes.clear()

    assert asyncio.run(engine.extract_and_store('bonjour')) is None

    oracle.fail_extract = True
    assert asyncio.run(engine.extract_and_store('bonjour')) is None
    assert backend.writes == []


def test_new_triggers_are_created_seeded_and_linked(engine, oracle, backend):
    oracle.extraction = extraction(
        ExtractedTrigger(' Travail ', Category.WORK, ['Taf', 'boulot']),
        ExtractedTrigger('pa', Category.OTHER, []),
        ExtractedTrigger('boulangerie', Category.WORK, []),
        memory=ExtractedMemory('Il adore son travail de boulanger', Category.WORK, 8),
    )
    backend.writes.clear()

    result = asyncio.run(engine.extract_and_store("J'adore mon taf à la boulangerie"))

    travail, boulangerie = result.triggers
    assert travail.word == 'travail'
    assert travail.synonyms == expand('travail') + ['taf']
    assert travail.score == 60
    assert travail.category == Category.WORK
    assert boulangerie.word == 'boulangerie'
    assert result.created_trigger_ids == [travail.id, boulangerie.id]
    assert [t.word for t in engine.list_triggers()] == ['travail', 'boulangerie']

    assert result.memory.content == 'Il adore son travail de boulanger'
    assert result.memory.importance == 8
    assert result.memory.trigger_links == [travail.id, boulangerie.id]
    assert_links_symmetric(engine)

    # one full-table save at the end
    assert sorted(backend.writes) == ['memories_v2', 'triggers_v2']


def test_existing_trigger_is_reused_activated_and_gains_synonyms(engine, oracle):
    existing = engine.create_trigger('travail', 'travail')
    oracle.extraction = extraction(
        ExtractedTrigger('TRAVAIL', Category.WORK, ['Taf', 'JOB']),
        memory=ExtractedMemory('Il change de travail', Category.WORK, 7),
    )

    result = asyncio.run(engine.extract_and_store('Je change de boulot'))

    assert result.triggers == [existing]
    assert result.created_trigger_ids == []
    assert len(engine.list_triggers()) == 1
    assert existing.usage_count == 1
    assert existing.score == 65
    assert existing.synonyms.count('job') == 1
    assert existing.synonyms[-1] == 'taf'
    assert existing.memory_links == [result.memory.id]


def test_short_word_is_dropped_unless_trigger_exists(engine, oracle):
    pc = engine.create_trigger('pc')
    oracle.extraction = extraction(ExtractedTrigger('PC'), ExtractedTrigger('tv'))

    result = asyncio.run(engine.extract_and_store("J'ai un PC et une TV"))

    assert result.triggers == [pc]
    assert result.memory is None
    assert [t.word for t in engine.list_triggers()] == ['pc']


def test_repeated_word_in_one_reply_is_handled_once(engine, oracle):
    oracle.extraction = extraction(ExtractedTrigger('piano'), ExtractedTrigger('Piano'),
                                   memory=ExtractedMemory('Il joue du piano'))

    result = asyncio.run(engine.extract_and_store('Je joue du piano'))

    assert len(result.triggers) == 1
    assert result.triggers[0].usage_count == 0
    assert len(result.memory.trigger_links) == 1


def test_memory_without_triggers_is_still_stored(engine, oracle):
    oracle.extraction = extraction(memory=ExtractedMemory('Elle est née en 1990', Category.OTHER, 6))

    result = asyncio.run(engine.extract_and_store('Je suis née en 1990'))

    assert result.triggers == []
    assert engine.get_memory(result.memory.id).trigger_links == []
