"""Tests for the SEO URL reconciler."""

import asyncio

import pytest

from seo_urls.events import EntityDeletedEvent, EntityWrite, EntityWrittenEvent, SeoContext
from seo_urls.exceptions import ConflictError, ScopeResolutionError, SlugGenerationError
from seo_urls.models import Language, SalesChannel
from seo_urls.repositories import PostgresSeoUrlRepository
from seo_urls.route_config import RouteRegistry, SeoUrlRoute
from seo_urls.services.reconciler import SeoUrlReconciler
from seo_urls.services.scope import DatabaseScopeResolver, SeoScope, StaticScopeResolver

ROUTE = "example.route.name"
ENTITY = "example_entity"


def written(*writes, context=None):
    return EntityWrittenEvent(
        entity_name=ENTITY,
        writes=[EntityWrite(foreign_key=fk, payload=payload) for fk, payload in writes],
        context=context or SeoContext(),
    )


def deleted(*foreign_keys):
    return EntityDeletedEvent(entity_name=ENTITY, foreign_keys=list(foreign_keys))


class SlowResolver:
    async def resolve(self, context):
        await asyncio.sleep(5)
        return [SeoScope("C1", "de", "de-DE")]


class BrokenResolver:
    async def resolve(self, context):
        raise RuntimeError("channel service unavailable")


class TestWrittenScenarios:
    @pytest.mark.asyncio
    async def test_entity_written_creates_canonical_record(self, make_reconciler, repository):
        result = await make_reconciler().handle(
            written(("E1", {"name": "Beispiel Seite"}), context=SeoContext(sales_channel_id="C1", language_id="de"))
        )

        assert result.status == "succeeded"
        assert result.inserted == 1
        [record] = await repository.find_all(ROUTE)
        assert record.route_name == ROUTE
        assert record.foreign_key == "E1"
        assert record.sales_channel_id == "C1"
        assert record.language_id == "de"
        assert record.seo_path_info == "/beispiel-seite"
        assert record.path_info == "/example-path/E1"
        assert record.is_canonical is True
        assert record.is_deleted is False

    @pytest.mark.asyncio
    async def test_rename_updates_path(self, make_reconciler, repository):
        reconciler = make_reconciler()
        await reconciler.handle(written(("E1", {"name": "Beispiel Seite"})))
        result = await reconciler.handle(written(("E1", {"name": "Neuer Titel"})))

        assert result.updated == 1
        [record] = await repository.find_active(ROUTE, ["E1"])
        assert record.seo_path_info == "/neuer-titel"

    @pytest.mark.asyncio
    async def test_rename_keeps_modified_path(self, make_reconciler, repository):
        reconciler = make_reconciler()
        await reconciler.handle(written(("E1", {"name": "Beispiel Seite"})))
        [record] = await repository.find_active(ROUTE, ["E1"])
        await repository.set_modified(record, True)
        await repository.session.commit()

        result = await reconciler.handle(written(("E1", {"name": "Neuer Titel"})))

        assert result.skipped_modified == 1
        [record] = await repository.find_active(ROUTE, ["E1"])
        assert record.seo_path_info == "/beispiel-seite"
        assert record.path_info == "/example-path/E1"

    @pytest.mark.asyncio
    async def test_rewrite_with_same_name_is_idempotent(self, make_reconciler, repository):
        reconciler = make_reconciler()
        await reconciler.handle(written(("E1", {"name": "Beispiel Seite"})))
        result = await reconciler.handle(written(("E1", {"name": "Beispiel Seite"})))

        assert result.unchanged == 1
        assert len(await repository.find_all(ROUTE)) == 1

    @pytest.mark.asyncio
    async def test_entity_deleted_soft_deletes(self, make_reconciler, repository):
        reconciler = make_reconciler()
        await reconciler.handle(written(("E1", {"name": "Beispiel Seite"})))

        result = await reconciler.handle(deleted("E1"))

        assert result.deleted == 1
        assert await repository.find_active(ROUTE, ["E1"]) == []
        [record] = await repository.find_all(ROUTE)
        assert record.is_deleted is True
        assert record.seo_path_info == "/beispiel-seite"


class TestTranslations:
    @pytest.mark.asyncio
    async def test_one_record_per_language(self, make_reconciler, repository):
        resolver = StaticScopeResolver([
            SeoScope("C1", "de", "de-DE"),
            SeoScope("C1", "en", "en-GB"),
        ])
        payload = {
            "name": "Example Page",
            "translations": {"de": {"name": "Beispiel Seite"}},
        }

        await make_reconciler(resolver=resolver).handle(written(("E1", payload)))

        paths = {r.language_id: r.seo_path_info for r in await repository.find_active(ROUTE)}
        assert paths == {"de": "/beispiel-seite", "en": "/example-page"}

    @pytest.mark.asyncio
    async def test_translation_by_locale(self, make_reconciler, repository):
        payload = {"name": "Example", "translations": {"de-DE": {"name": "Grüße"}}}

        await make_reconciler().handle(written(("E1", payload)))

        [record] = await repository.find_active(ROUTE)
        assert record.seo_path_info == "/gruesse"

    @pytest.mark.asyncio
    async def test_route_template_and_name_field(self, make_reconciler, repository, session):
        registry = RouteRegistry([
            SeoUrlRoute(
                route_name="frontend.blog.post",
                entity_name="blog_post",
                path_info_template="/blog/post/{id}",
                seo_path_template="/blog/{slug}",
                name_field="title",
            )
        ])
        event = EntityWrittenEvent(
            entity_name="blog_post",
            writes=[EntityWrite(foreign_key="P1", payload={"title": "Hallo Welt"})],
        )

        await make_reconciler(registry=registry).handle(event)

        [record] = await repository.find_active("frontend.blog.post")
        assert record.seo_path_info == "/blog/hallo-welt"
        assert record.path_info == "/blog/post/P1"


class TestFailures:
    @pytest.mark.asyncio
    async def test_blank_name_fails_whole_batch(self, make_reconciler, repository):
        with pytest.raises(SlugGenerationError) as exc_info:
            await make_reconciler().handle(
                written(("E1", {"name": "Gültig"}), ("E2", {"name": "   "}))
            )

        assert exc_info.value.foreign_key == "E2"
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_punctuation_only_name_is_rejected(self, make_reconciler, repository):
        with pytest.raises(SlugGenerationError):
            await make_reconciler().handle(written(("E1", {"name": "!!!"})))
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_null_name_is_rejected(self, make_reconciler, repository):
        with pytest.raises(SlugGenerationError):
            await make_reconciler().handle(written(("E1", {"name": None})))

    @pytest.mark.asyncio
    async def test_malformed_translations_fail_batch(self, make_reconciler, repository):
        with pytest.raises(SlugGenerationError, match="translations must be an object") as exc_info:
            await make_reconciler().handle(
                written(("E1", {"name": "Gültig"}), ("E2", {"name": "Kaputt", "translations": ["de"]}))
            )

        assert exc_info.value.foreign_key == "E2"
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_malformed_translation_entry_fails_batch(self, make_reconciler):
        with pytest.raises(SlugGenerationError, match="must be an object"):
            await make_reconciler().handle(
                written(("E1", {"name": "Kaputt", "translations": {"de": "Beispiel"}}))
            )

    @pytest.mark.asyncio
    async def test_no_sales_channel_is_fatal(self, make_reconciler, repository):
        with pytest.raises(ScopeResolutionError):
            await make_reconciler(resolver=StaticScopeResolver([])).handle(
                written(("E1", {"name": "Beispiel Seite"}))
            )
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_scope_lookup_timeout_is_fatal(self, make_reconciler, repository, settings):
        fast = settings.model_copy(update={"scope_resolution_timeout_seconds": 0.05})

        with pytest.raises(ScopeResolutionError, match="timed out"):
            await make_reconciler(resolver=SlowResolver(), settings=fast).handle(
                written(("E1", {"name": "Beispiel Seite"}))
            )
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_scope_lookup_error_is_fatal(self, make_reconciler):
        with pytest.raises(ScopeResolutionError, match="unavailable"):
            await make_reconciler(resolver=BrokenResolver()).handle(
                written(("E1", {"name": "Beispiel Seite"}))
            )

    @pytest.mark.asyncio
    async def test_conflict_under_reject_policy(self, make_reconciler, repository):
        with pytest.raises(ConflictError):
            await make_reconciler().handle(
                written(("E1", {"name": "Shirt"}), ("E2", {"name": "Shirt"}))
            )
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_reconciler_session_usable_after_failure(self, make_reconciler, repository):
        reconciler = make_reconciler()
        with pytest.raises(SlugGenerationError):
            await reconciler.handle(written(("E1", {"name": ""})))

        result = await reconciler.handle(written(("E1", {"name": "Zweiter Versuch"})))
        assert result.inserted == 1


class TestBatchShapes:
    @pytest.mark.asyncio
    async def test_suffix_policy(self, make_reconciler, repository, settings):
        suffix = settings.model_copy(update={"seo_conflict_policy": "suffix"})

        result = await make_reconciler(settings=suffix).handle(
            written(("E1", {"name": "Shirt"}), ("E2", {"name": "Shirt"}))
        )

        assert result.suffixed_paths == ["/shirt-2"]
        paths = {r.foreign_key: r.seo_path_info for r in await repository.find_active(ROUTE)}
        assert paths == {"E1": "/shirt", "E2": "/shirt-2"}

    @pytest.mark.asyncio
    async def test_partial_update_without_name_is_skipped(self, make_reconciler, repository):
        result = await make_reconciler().handle(written(("E1", {"price": 10})))

        assert result.skipped_without_name == 1
        assert result.inserted == 0
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_unknown_entity_is_skipped(self, make_reconciler, repository):
        event = EntityWrittenEvent(
            entity_name="unrelated",
            writes=[EntityWrite(foreign_key="X1", payload={"name": "Egal"})],
        )

        result = await make_reconciler().handle(event)

        assert result.status == "skipped"
        assert await repository.find_all(ROUTE) == []

    @pytest.mark.asyncio
    async def test_explicit_channel_overrides_default(self, make_reconciler, repository):
        await make_reconciler().handle(
            written(("E1", {"name": "Beispiel Seite"}), context=SeoContext(sales_channel_id="C2"))
        )

        [record] = await repository.find_active(ROUTE)
        assert record.sales_channel_id == "C2"
        assert record.language_id == "de"

    @pytest.mark.asyncio
    async def test_delete_covers_every_channel(self, make_reconciler, repository):
        resolver = StaticScopeResolver([SeoScope("C1", "de", "de-DE"), SeoScope("C2", "de", "de-DE")])
        reconciler = make_reconciler(resolver=resolver)
        await reconciler.handle(written(("E1", {"name": "Beispiel Seite"}), ("E2", {"name": "Zwei"})))

        result = await reconciler.handle(deleted("E1"))

        assert result.deleted == 2
        assert [r.foreign_key for r in await repository.find_active(ROUTE)] == ["E2", "E2"]

    @pytest.mark.asyncio
    async def test_delete_of_unknown_entity_type_is_skipped(self, make_reconciler):
        result = await make_reconciler().handle(
            EntityDeletedEvent(entity_name="unrelated", foreign_keys=["X1"])
        )
        assert result.status == "skipped"


class TestDatabaseScopes:
    @pytest.mark.asyncio
    async def test_storefront_channels_and_languages(self, make_reconciler, repository, session):
        de = Language(id="de", name="Deutsch", locale="de-DE")
        en = Language(id="en", name="English", locale="en-GB")
        session.add_all([
            SalesChannel(id="C1", name="Storefront", languages=[de, en]),
            SalesChannel(id="C2", name="Closed shop", active=False, languages=[de]),
            SalesChannel(id="C3", name="API", type_name="headless", languages=[de]),
        ])
        await session.commit()

        await make_reconciler(resolver=DatabaseScopeResolver(session)).handle(
            written(("E1", {"name": "Schöne Grüße", "translations": {"en": {"name": "Kind regards"}}}))
        )

        records = await repository.find_active(ROUTE)
        assert {(r.sales_channel_id, r.language_id, r.seo_path_info) for r in records} == {
            ("C1", "de", "/schoene-gruesse"),
            ("C1", "en", "/kind-regards"),
        }

    @pytest.mark.asyncio
    async def test_inactive_channel_resolves_nothing(self, make_reconciler, session):
        session.add(SalesChannel(id="C2", name="Closed", active=False,
                                 languages=[Language(id="de", name="Deutsch", locale="de-DE")]))
        await session.commit()

        with pytest.raises(ScopeResolutionError):
            await make_reconciler(resolver=DatabaseScopeResolver(session)).handle(
                written(("E1", {"name": "Beispiel"}), context=SeoContext(sales_channel_id="C2"))
            )


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_batches_on_same_entity(
        self, session_maker, resolver, registry, settings, key_locks
    ):
        async def run(name):
            async with session_maker() as session:
                reconciler = SeoUrlReconciler(
                    session, resolver, registry=registry, settings=settings, lock_registry=key_locks
                )
                return await reconciler.handle(written(("E1", {"name": name})))

        await asyncio.gather(run("Erster Name"), run("Zweiter Name"))

        async with session_maker() as session:
            repository = PostgresSeoUrlRepository(session, lock_registry=key_locks)
            canonical = await repository.find_active(ROUTE, ["E1"])
            history = await repository.find_active(ROUTE, ["E1"], include_history=True)

        assert len(canonical) == 1
        assert canonical[0].seo_path_info in {"/erster-name", "/zweiter-name"}
        assert len(history) == 2
