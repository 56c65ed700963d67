"""End-to-end tests for PeopleMemory against a SQLite store."""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock

from kindred.config.models import KindredConfig, ModelConfig, PeopleConfig
from kindred.llm.openai import OpenAIProvider
from kindred.people.context import EMPTY_CONTEXT
from kindred.people.manager import PeopleMemory, create_people_memory
from kindred.store.protocols import StoreError
from kindred.store.sql import SQLRelationshipStore

from tests.conftest import BASE_TIME, MockLLMProvider, ScriptedLLM, make_record

USER = "user-1"


def people(*items: dict) -> str:
    return json.dumps(list(items))


class TestProcessMentions:
    async def test_idempotent_re_mention(self, people_memory, scripted_llm, store):
        mention = {"real_name": "Luciana Braga", "relation_type": "esposa"}
        scripted_llm.extractions = [people(mention), people(mention)]

        await people_memory.process_mentions("a Luciana Braga", USER, now=BASE_TIME)
        await people_memory.process_mentions(
            "de novo a Luciana Braga", USER, now=BASE_TIME + timedelta(hours=1)
        )

        [record] = await store.query_records(USER)
        assert record.mention_count == 2
        assert len(record.mention_history) == 2
        assert record.last_mentioned_at == BASE_TIME + timedelta(hours=1)

    async def test_alias_driven_merge(self, people_memory, scripted_llm, store):
        scripted_llm.extractions = [
            people(
                {
                    "real_name": "Luciana Braga",
                    "aliases": ["Lu Braga"],
                    "relation_type": "esposa",
                }
            ),
            people({"real_name": "", "aliases": ["Lu Braga"], "relation_type": "esposa"}),
        ]

        await people_memory.process_mentions("minha esposa Luciana Braga", USER)
        await people_memory.process_mentions("a Lu Braga chegou", USER)

        [record] = await store.query_records(USER)
        assert record.real_name == "Luciana Braga"
        assert record.mention_count == 2

    async def test_conflict_guard(self, people_memory, scripted_llm, store):
        scripted_llm.extractions = [
            people({"real_name": "Luciana", "aliases": ["Lu"], "relation_type": "esposa"}),
            people({"real_name": "", "aliases": ["Lu"], "relation_type": "irma"}),
        ]

        await people_memory.process_mentions("minha esposa Lu", USER)
        await people_memory.process_mentions("minha irmã Lu", USER)

        records = await store.query_records(USER)
        assert sorted(r.relation_type for r in records) == ["esposa", "irma"]

    async def test_kinship_relativization(self, people_memory, scripted_llm, store):
        await store.insert_record(make_record("Ana Paula", "esposa", ["Ana"]))
        scripted_llm.extractions = [people({"real_name": "", "relation_type": "mae"})]

        await people_memory.process_mentions("Falei com a mãe da Ana hoje", USER)

        relations = {r.relation_type for r in await store.query_records(USER)}
        assert relations == {"esposa", "sogra"}

    async def test_history_bound(self, people_memory, scripted_llm, store):
        mention = {"real_name": "Ana", "relation_type": "irma"}
        scripted_llm.extractions = [people(mention) for _ in range(15)]

        for i in range(15):
            await people_memory.process_mentions(
                f"mensagem {i}", USER, now=BASE_TIME + timedelta(minutes=i)
            )

        [record] = await store.query_records(USER)
        assert record.mention_count == 15
        assert [e.excerpt for e in record.mention_history] == [
            f"mensagem {i}" for i in range(3, 15)
        ]
        times = [e.at for e in record.mention_history]
        assert times == sorted(times)

    async def test_jaccard_fallback(self, people_memory, scripted_llm, store):
        await store.insert_record(make_record("Maria Souza", "amiga"))
        scripted_llm.extractions = [
            people({"real_name": "Maria Silva Souza", "relation_type": "amiga"})
        ]

        await people_memory.process_mentions("a Maria Silva Souza ligou", USER)

        [record] = await store.query_records(USER)
        assert record.real_name == "Maria Silva Souza"
        assert record.mention_count == 2

    async def test_same_person_twice_in_one_message(
        self, people_memory, scripted_llm, store
    ):
        scripted_llm.extractions = [
            people(
                {"real_name": "Pedro Alves", "relation_type": "amigo"},
                {"real_name": "Pedro Alves", "aliases": ["Pedrinho"]},
            )
        ]

        await people_memory.process_mentions("Pedro Alves, o Pedrinho", USER)

        [record] = await store.query_records(USER)
        assert record.mention_count == 2
        assert record.aliases == ["Pedrinho"]
        assert record.relation_type == "amigo"

    async def test_returns_mentioned_names(self, people_memory, scripted_llm):
        scripted_llm.extractions = [
            people(
                {"real_name": "Ana", "aliases": ["Aninha"], "relation_type": "irma"},
                {"real_name": "", "aliases": ["aninha", "Paulinho"]},
            )
        ]

        names = await people_memory.process_mentions("...", USER)

        assert names == ["Ana", "Aninha", "Paulinho"]

    async def test_no_mentions(self, people_memory, store):
        assert await people_memory.process_mentions("bom dia", USER) == []
        assert await store.query_records(USER) == []

    async def test_profile_compacted_once_per_record(
        self, people_memory, scripted_llm, store
    ):
        scripted_llm.profile = "Irmã do usuário."
        scripted_llm.extractions = [
            people(
                {"real_name": "Ana", "relation_type": "irma"},
                {"real_name": "Ana", "relation_type": "irma"},
                {"real_name": "Bia", "relation_type": "amiga"},
            )
        ]

        await people_memory.process_mentions("Ana, Ana e Bia", USER)

        assert len(scripted_llm.profile_calls) == 2
        records = await store.query_records(USER)
        assert all(r.compact_profile == "Irmã do usuário." for r in records)

    async def test_profile_failure_keeps_record(self, store):
        class FailingProfileLLM(ScriptedLLM):
            async def complete(self, messages, **kwargs):
                if kwargs.get("system"):
                    raise RuntimeError("summarizer down")
                return await super().complete(messages, **kwargs)

        llm = FailingProfileLLM(extractions=[people({"real_name": "Ana"})])
        memory = PeopleMemory(llm=llm, store=store)

        assert await memory.process_mentions("Ana", USER) == ["Ana"]
        [record] = await store.query_records(USER)
        assert record.compact_profile is None

    async def test_extraction_timeout(self, store):
        class SlowLLM(MockLLMProvider):
            async def complete(self, messages, **kwargs):
                await asyncio.sleep(1)
                return await super().complete(messages, **kwargs)

        memory = PeopleMemory(
            llm=SlowLLM(),
            store=store,
            config=PeopleConfig(extraction_timeout=0.01),
        )
        assert await memory.process_mentions("Minha mãe", USER) == []

    async def test_snapshot_failure_still_returns_names(self, scripted_llm):
        store = AsyncMock()
        store.query_records.side_effect = StoreError("db locked")
        scripted_llm.extractions = [people({"real_name": "Ana"})]
        memory = PeopleMemory(llm=scripted_llm, store=store)

        assert await memory.process_mentions("Ana", USER) == ["Ana"]
        store.insert_record.assert_not_called()

    async def test_partial_store_failure_continues_batch(self, scripted_llm):
        store = AsyncMock()
        store.query_records.return_value = []
        store.insert_record.side_effect = [StoreError("full"), "rec-2"]
        store.update_record.return_value = True
        scripted_llm.extractions = [
            people({"real_name": "Ana"}, {"real_name": "Bia"})
        ]
        memory = PeopleMemory(llm=scripted_llm, store=store)

        names = await memory.process_mentions("Ana e Bia", USER)

        assert names == ["Ana", "Bia"]
        assert store.insert_record.await_count == 2
        store.update_record.assert_awaited_once()
        assert store.update_record.await_args.args[0] == "rec-2"

    async def test_annotations_accumulate(self, people_memory, scripted_llm, store):
        scripted_llm.extractions = [
            people(
                {
                    "real_name": "Ana",
                    "relation_type": "irma",
                    "marcador_emocional": ["saudade"],
                    "contexto_relevante": "mudou para Lisboa",
                }
            ),
            people(
                {
                    "real_name": "Ana",
                    "emotion_markers": ["orgulho", "saudade"],
                    "context": "passou no mestrado",
                }
            ),
        ]

        await people_memory.process_mentions("A Ana mudou para Lisboa", USER)
        await people_memory.process_mentions("A Ana passou no mestrado", USER)

        [record] = await store.query_records(USER)
        assert record.mention_count == 2
        assert record.emotion_markers == ["saudade", "orgulho"]
        assert record.relevant_contexts == ["mudou para Lisboa", "passou no mestrado"]
        brief = scripted_llm.profile_calls[-1]["messages"][0].content
        assert "Key emotions: saudade, orgulho" in brief

    async def test_concurrent_messages_for_same_user(self, people_memory, scripted_llm, store):
        mention = {"real_name": "Carla Dias", "relation_type": "amiga"}
        scripted_llm.extractions = [people(mention), people(mention)]

        await asyncio.gather(
            people_memory.process_mentions("Carla Dias", USER),
            people_memory.process_mentions("Carla Dias de novo", USER),
        )

        [record] = await store.query_records(USER)
        assert record.mention_count == 2

    async def test_users_are_isolated(self, people_memory, scripted_llm, store):
        mention = {"real_name": "Ana", "relation_type": "irma"}
        scripted_llm.extractions = [people(mention), people(mention)]

        await people_memory.process_mentions("Ana", "user-a")
        await people_memory.process_mentions("Ana", "user-b")

        assert len(await store.query_records("user-a")) == 1
        assert len(await store.query_records("user-b")) == 1

    async def test_user_locks_released_after_processing(
        self, people_memory, scripted_llm
    ):
        scripted_llm.extractions = [
            people({"real_name": f"Pessoa {i}"}) for i in range(20)
        ]

        for i in range(20):
            await people_memory.process_mentions(f"Pessoa {i}", f"user-{i}")

        assert people_memory._user_locks == {}

    async def test_user_locks_released_after_concurrent_processing(
        self, people_memory, scripted_llm
    ):
        mention = {"real_name": "Carla Dias"}
        scripted_llm.extractions = [people(mention) for _ in range(3)]

        await asyncio.gather(
            *(people_memory.process_mentions("Carla Dias", USER) for _ in range(3))
        )

        assert people_memory._user_locks == {}

    async def test_user_lock_released_on_failure(self, scripted_llm):
        store = AsyncMock()
        store.query_records.side_effect = RuntimeError("boom")
        scripted_llm.extractions = [people({"real_name": "Ana"})]
        memory = PeopleMemory(llm=scripted_llm, store=store)

        await memory.process_mentions("Ana", USER)

        assert memory._user_locks == {}


class TestContext:
    async def test_context_ordering(self, people_memory, store):
        for name, count in [("A", 5), ("B", 1), ("C", 9)]:
            await store.insert_record(make_record(name, mention_count=count))

        selected = await people_memory.select_context(USER, [], limit=2)

        assert [r.mention_count for r in selected] == [9, 5]

    async def test_select_and_render(self, people_memory, store):
        await store.insert_record(
            make_record("Luciana", "esposa", ["Lu"], compact_profile="Esposa.")
        )
        await store.insert_record(make_record("Ana", "irma", mention_count=10))

        block = await people_memory.select_and_render_context(USER, ["lu"])

        assert block.splitlines() == [
            "- Luciana [esposa] | aliases: Lu",
            "  Profile: Esposa.",
            "- Ana [irma]",
        ]

    async def test_render_is_bounded(self, scripted_llm, store):
        memory = PeopleMemory(
            llm=scripted_llm, store=store, config=PeopleConfig(context_max_chars=20)
        )
        await store.insert_record(make_record("Maximiliano Albuquerque", "amigo"))

        block = await memory.select_and_render_context(USER, [])
        assert len(block) == 20

    async def test_no_records(self, people_memory):
        assert await people_memory.select_and_render_context(USER, []) == EMPTY_CONTEXT

    async def test_store_failure_renders_empty(self, scripted_llm):
        store = AsyncMock()
        store.query_records.side_effect = StoreError("down")
        memory = PeopleMemory(llm=scripted_llm, store=store)

        assert await memory.select_and_render_context(USER, ["Ana"]) == EMPTY_CONTEXT


class TestRefreshProfile:
    async def test_refresh_loads_and_stores(self, people_memory, scripted_llm, store):
        record_id = await store.insert_record(make_record("Ana", "irma"))
        scripted_llm.profile = "Irmã."

        assert await people_memory.refresh_profile(record_id) == "Irmã."
        assert (await store.get_record(record_id)).compact_profile == "Irmã."

    async def test_missing_record(self, people_memory):
        assert await people_memory.refresh_profile("nope") is None


class TestCreatePeopleMemory:
    def test_wires_configured_model(self, database, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        config = KindredConfig(
            models={"default": ModelConfig(provider="openai", model="gpt-4o-mini")}
        )

        memory = create_people_memory(config, database)

        assert isinstance(memory.store, SQLRelationshipStore)
        assert isinstance(memory._extractor._llm, OpenAIProvider)
        assert memory._extractor._model == "gpt-4o-mini"
