"""Tests for the enrichment sweeps and the schema migrations."""

import json

import pytest

from blogengine.core.errors import GenerationFailure
from blogengine.core.utils import text_to_blocks
from blogengine.migrator.engine import MAX_LISTED_ARTICLES, blog_post_summary, body_summary, product_names
from blogengine.migrator.geo import BlogPostGeoSweep, GeoSweep
from blogengine.migrator.references import ReferencesSweep, validate_references
from blogengine.migrator.schema import migrate_product_links, migrate_reference_types, rename_item_types
from blogengine.rewriter.generator import ContentGenerator
from tests.fakes import ScriptedProvider, full_replies, no_sleep


def geo_sweep(gateway, provider=None, **kwargs):
    return GeoSweep(gateway, ContentGenerator(provider or ScriptedProvider(full_replies())), sleep=no_sleep, **kwargs)


def references_sweep(gateway, provider=None, **kwargs):
    return ReferencesSweep(gateway, ContentGenerator(provider or ScriptedProvider(full_replies())), sleep=no_sleep, **kwargs)


def legacy_article(gateway, title, **fields):
    return gateway.add({
        "title": title,
        "slug": {"_type": "slug", "current": title.lower().replace(" ", "-")},
        "introduction": text_to_blocks("Intro paragraph."),
        "mainContent": text_to_blocks("Main body."),
        "category": "skincare",
        "customField": "keep me",
        **fields,
    })


class TestBodySummary:

    def test_joins_and_truncates(self):
        record = {
            "introduction": text_to_blocks("Intro."),
            "mainContent": text_to_blocks("A" * 5000),
        }
        summary = body_summary(record, 100)
        assert summary.startswith("Intro.\n\nAAA")
        assert len(summary) == 100

    def test_missing_body(self):
        assert body_summary({}, 100) == ""


class TestGeoSweep:

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, gateway):
        for i in range(3):
            legacy_article(gateway, f"Article {i}")

        first = await geo_sweep(gateway).run()
        second = await geo_sweep(gateway).run()

        assert first.updated == 3
        assert first.errors == 0
        assert second.processed == 0
        assert second.updated == 0

    @pytest.mark.asyncio
    async def test_only_target_fields_written(self, gateway):
        doc_id = legacy_article(gateway, "Gua Sha 101", references=[{"_type": "sourceReference"}])
        await geo_sweep(gateway).run()

        doc_id_, payload = gateway.patches[0]
        assert doc_id_ == doc_id
        assert set(payload) <= {"quickAnswer", "keyTakeaways", "expertTips", "faqSection", "kyndallsTake"}
        doc = gateway.documents[doc_id]
        assert doc["customField"] == "keep me"
        assert doc["references"] == [{"_type": "sourceReference"}]
        assert doc["title"] == "Gua Sha 101"

    @pytest.mark.asyncio
    async def test_complete_records_not_selected(self, gateway):
        legacy_article(gateway, "Done", quickAnswer="x", keyTakeaways=[{"point": "p"}], faqSection=[{"q": 1}])
        legacy_article(gateway, "Blank answer", quickAnswer="  ", keyTakeaways=[{"point": "p"}], faqSection=[{"q": 1}])
        legacy_article(gateway, "Empty faq", quickAnswer="x", keyTakeaways=[{"point": "p"}], faqSection=[])

        result = await geo_sweep(gateway).run()
        assert sorted(a["title"] for a in result.articles) == ["Blank answer", "Empty faq"]

    @pytest.mark.asyncio
    async def test_capped_per_sweep(self, gateway):
        for i in range(7):
            legacy_article(gateway, f"Article {i}", publishedAt=f"2024-01-0{i + 1}T00:00:00+00:00")

        result = await geo_sweep(gateway, max_records=5).run()
        assert result.processed == 5
        # Newest first
        assert result.articles[0]["title"] == "Article 6"

        limited = await geo_sweep(gateway, max_records=5).run(limit=1)
        assert limited.processed == 1

    @pytest.mark.asyncio
    async def test_summary_bounded(self, gateway):
        gateway.add({"title": "Long", "mainContent": text_to_blocks("word " * 2000)})
        provider = ScriptedProvider(full_replies())
        await geo_sweep(gateway, provider, summary_chars=300).run()

        prompt = provider.calls[0][1]
        content = prompt.split("CONTENT:\n", 1)[1].split("\n\nReturn this JSON", 1)[0]
        assert len(content) <= 300

    @pytest.mark.asyncio
    async def test_unparseable_output_is_skipped(self, gateway):
        legacy_article(gateway, "Gua Sha 101")
        result = await geo_sweep(gateway, ScriptedProvider({"geo": "I'm not sure."})).run()

        assert result.skipped == 1
        assert result.errors == 0
        assert gateway.patches == []

    @pytest.mark.asyncio
    async def test_generation_error_counted_and_sweep_continues(self, gateway):
        legacy_article(gateway, "First", publishedAt="2024-02-01T00:00:00+00:00")
        legacy_article(gateway, "Second", publishedAt="2024-01-01T00:00:00+00:00")
        calls = []

        def reply(prompt):
            calls.append(prompt)
            if "TITLE: First" in prompt:
                raise GenerationFailure("overloaded")
            return full_replies()["geo"]

        result = await geo_sweep(gateway, ScriptedProvider({"geo": reply})).run()

        assert result.errors == 1
        assert result.updated == 1
        assert [a["title"] for a in result.articles] == ["Second"]

    @pytest.mark.asyncio
    async def test_wrongly_typed_reply_does_not_stop_sweep(self, gateway):
        first = legacy_article(gateway, "First", publishedAt="2024-02-01T00:00:00+00:00")
        second = legacy_article(gateway, "Second", publishedAt="2024-01-01T00:00:00+00:00")

        def reply(prompt):
            if "TITLE: First" in prompt:
                return json.dumps({"quickAnswer": ["not", "a", "string"]})
            return full_replies()["geo"]

        result = await geo_sweep(gateway, ScriptedProvider({"geo": reply})).run()

        assert result.processed == 2
        assert result.skipped == 1
        assert result.updated == 1
        assert "quickAnswer" not in gateway.documents[first]
        assert gateway.documents[second]["quickAnswer"]

    @pytest.mark.asyncio
    async def test_unexpected_error_counted_and_sweep_continues(self, gateway):
        legacy_article(gateway, "First", publishedAt="2024-02-01T00:00:00+00:00")
        legacy_article(gateway, "Second", publishedAt="2024-01-01T00:00:00+00:00")
        sweep = geo_sweep(gateway)
        real_build = sweep.build_patch

        async def flaky_build(record, summary):
            if record["title"] == "First":
                raise TypeError("unexpected shape")
            return await real_build(record, summary)

        sweep.build_patch = flaky_build
        result = await sweep.run()

        assert result.processed == 2
        assert result.errors == 1
        assert result.updated == 1
        assert result.success

    @pytest.mark.asyncio
    async def test_patch_failure_counted_and_sweep_continues(self, gateway):
        bad = legacy_article(gateway, "Bad", publishedAt="2024-02-01T00:00:00+00:00")
        legacy_article(gateway, "Good", publishedAt="2024-01-01T00:00:00+00:00")
        gateway.fail_patch_ids.add(bad)

        result = await geo_sweep(gateway).run()

        assert result.errors == 1
        assert result.updated == 1
        assert result.success

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, gateway):
        legacy_article(gateway, "Gua Sha 101")
        result = await geo_sweep(gateway).run(dry_run=True)

        assert gateway.patches == []
        assert result.dry_run
        assert result.skipped == 1
        assert result.articles[0]["slug"] == "gua-sha-101"
        assert "quickAnswer" in result.articles[0]["fieldsAdded"]

    @pytest.mark.asyncio
    async def test_fetch_failure_reported(self, gateway):
        gateway.fail_queries = True
        result = await geo_sweep(gateway).run()

        assert not result.success
        assert result.to_dict()["error"] == "query failed"

    @pytest.mark.asyncio
    async def test_delay_between_records(self, gateway):
        for i in range(3):
            legacy_article(gateway, f"Article {i}")
        sleeps = []

        async def record(seconds):
            sleeps.append(seconds)

        sweep = GeoSweep(gateway, ContentGenerator(ScriptedProvider(full_replies())), delay_seconds=1.5, sleep=record)
        await sweep.run()
        assert sleeps == [1.5, 1.5]

    @pytest.mark.asyncio
    async def test_listed_articles_capped(self, gateway):
        for i in range(MAX_LISTED_ARTICLES + 5):
            legacy_article(gateway, f"Article {i}")
        result = await geo_sweep(gateway, max_records=100).run()

        assert result.updated == MAX_LISTED_ARTICLES + 5
        assert len(result.articles) == MAX_LISTED_ARTICLES


class TestReferences:

    def test_invalid_url_excluded(self):
        refs = validate_references([
            {"title": "Retinoid Basics", "publisher": "AAD", "url": "https://www.aad.org/retinoids"},
            {"title": "Fake", "publisher": "Nowhere", "url": "not-a-url"},
            {"title": "", "publisher": "AAD", "url": "https://www.aad.org"},
            {"title": "No publisher", "url": "https://example.com"},
        ])
        assert [r.title for r in refs] == ["Retinoid Basics"]

    @pytest.mark.asyncio
    async def test_sweep_patches_valid_references(self, gateway):
        doc_id = legacy_article(gateway, "Retinol 101", quickAnswer="Go slow")
        provider = ScriptedProvider(full_replies())
        result = await references_sweep(gateway, provider).run()

        assert result.updated == 1
        refs = gateway.documents[doc_id]["references"]
        assert [r["url"] for r in refs] == ["https://www.aad.org/retinoids"]
        assert refs[0]["_type"] == "sourceReference"
        assert refs[0]["_key"]
        assert "QUICK ANSWER: Go slow" in provider.calls[0][1]

    @pytest.mark.asyncio
    async def test_all_invalid_is_skipped(self, gateway):
        legacy_article(gateway, "Retinol 101")
        reply = json.dumps({"references": [{"title": "x", "publisher": "y", "url": "nope"}]})
        result = await references_sweep(gateway, ScriptedProvider({"references": reply})).run()

        assert result.skipped == 1
        assert result.errors == 0
        assert gateway.patches == []

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, gateway):
        legacy_article(gateway, "Retinol 101")
        await references_sweep(gateway).run()
        second = await references_sweep(gateway).run()
        assert second.processed == 0


class TestReferenceTypeMigration:

    def test_rename_item_types(self):
        items = [{"_type": "reference", "_key": "a"}, {"_type": "sourceReference", "_key": "b"}]
        assert rename_item_types(items, "reference", "sourceReference") == [
            {"_type": "sourceReference", "_key": "a"},
            {"_type": "sourceReference", "_key": "b"},
        ]
        assert rename_item_types(items[1:], "reference", "sourceReference") is None

    @pytest.mark.asyncio
    async def test_renamed_once(self, gateway):
        doc_id = gateway.add({
            "title": "Old refs",
            "references": [
                {"_type": "reference", "_key": "k1", "title": "A", "url": "https://a.org"},
                {"_type": "sourceReference", "_key": "k2", "title": "B", "url": "https://b.org"},
            ],
        })
        gateway.add({"title": "New refs", "references": [{"_type": "sourceReference", "_key": "k3"}]})

        first = await migrate_reference_types(gateway)
        second = await migrate_reference_types(gateway)

        refs = gateway.documents[doc_id]["references"]
        assert [r["_type"] for r in refs] == ["sourceReference", "sourceReference"]
        assert [r["_key"] for r in refs] == ["k1", "k2"]
        assert refs[0]["title"] == "A"
        assert first.updated == 1
        assert second.processed == 0
        assert second.updated == 0

    @pytest.mark.asyncio
    async def test_dry_run(self, gateway):
        gateway.add({"title": "Old refs", "references": [{"_type": "reference"}]})
        result = await migrate_reference_types(gateway, dry_run=True)

        assert result.updated == 0
        assert result.skipped == 1
        assert gateway.patches == []


class TestProductLinkMigration:

    @pytest.mark.asyncio
    async def test_converts_legacy_links(self, gateway):
        post_id = gateway.add({
            "_type": "blogPost",
            "title": "My Favorites",
            "productLinks": [
                {"name": "Lip Oil", "brand": "Dior", "shopmyUrl": "https://shopmy.us/x", "amazonUrl": ""},
                {"name": "", "amazonUrl": "https://amazon.com/y"},
            ],
        })
        gateway.add({"_type": "blogPost", "title": "Migrated", "productLinks": [{"name": "x"}],
                     "featuredProducts": [{"productName": "x"}]})

        result = await migrate_product_links(gateway)
        products = gateway.documents[post_id]["featuredProducts"]

        assert result.updated == 1
        assert products[0]["productName"] == "Lip Oil"
        assert products[0]["hasShopMyLink"] == "yes"
        assert products[0]["hasAmazonLink"] == "pending"
        assert "amazonUrl" not in products[0]
        assert products[1]["productName"] == "Product"
        assert products[1]["hasAmazonLink"] == "yes"
        assert products[0]["_key"] != products[1]["_key"]
        assert all(p["_type"] == "product" for p in products)

        again = await migrate_product_links(gateway)
        assert again.processed == 0


class TestBlogPostGeoSweep:

    def test_summary_prefers_stripped_html(self):
        record = {"htmlContent": "<h2>Lip oils</h2><p>My <b>favorite</b> picks.</p>", "content": text_to_blocks("ignored")}
        assert blog_post_summary(record, 100) == "Lip oils My favorite picks."
        assert blog_post_summary(record, 8) == "Lip oils"

    def test_summary_falls_back_to_portable_text(self):
        record = {"htmlContent": "  ", "content": text_to_blocks("One.\n\nTwo.")}
        assert blog_post_summary(record, 100) == "One.\nTwo."
        assert blog_post_summary({}, 100) == ""

    def test_product_names(self):
        assert product_names({"featuredProducts": [
            {"brand": "Dior", "productName": "Lip Glow Oil"},
            {"productName": "Gua Sha"},
            {"brand": ""},
            "junk",
        ]}) == ["Dior Lip Glow Oil", "Gua Sha"]
        assert product_names({"productLinks": [{"brand": "Laneige", "name": "Lip Mask"}]}) == ["Laneige Lip Mask"]

    @pytest.mark.asyncio
    async def test_backfills_blog_posts_only(self, gateway):
        post_id = gateway.add({
            "_type": "blogPost",
            "title": "My Lip Oil Lineup",
            "slug": "my-lip-oil-lineup",
            "htmlContent": "<p>These <em>four</em> oils live in my bag.</p>",
            "featuredProducts": [{"brand": "Dior", "productName": "Lip Glow Oil"}],
        })
        article_id = legacy_article(gateway, "Gua Sha 101")
        provider = ScriptedProvider(full_replies())

        result = await BlogPostGeoSweep(gateway, ContentGenerator(provider), sleep=no_sleep).run()

        assert result.kind == "blog-post-geo"
        assert result.updated == 1
        assert [doc_id for doc_id, _ in gateway.patches] == [post_id]
        assert gateway.documents[post_id]["quickAnswer"]
        assert "quickAnswer" not in gateway.documents[article_id]
        prompt = provider.calls[0][1]
        assert "PRODUCTS MENTIONED: Dior Lip Glow Oil" in prompt
        assert "These four oils live in my bag." in prompt
        assert "<p>" not in prompt

        again = await BlogPostGeoSweep(gateway, ContentGenerator(provider), sleep=no_sleep).run()
        assert again.processed == 0

    @pytest.mark.asyncio
    async def test_from_settings(self, gateway, settings):
        sweep = BlogPostGeoSweep.from_settings(settings, gateway, ContentGenerator(ScriptedProvider()))
        assert sweep.summary_chars == settings.blog_post_summary_chars
        assert sweep.max_records == settings.migration_max_records
