"""Tests for the skill store: lookup, grouping, search and references."""

import threading

import pytest

from ai_agent.skills import InMemorySkillSource, SkillReference, SkillSource, SkillStore


class CountingSource(SkillSource):
    """Source that counts how often it is loaded."""

    def __init__(self, skills):
        self.skills = skills
        self.loads = 0

    def load(self):
        self.loads += 1
        return list(self.skills)


@pytest.fixture
def catalog(skill_factory):
    return [
        skill_factory(
            "latex-table-formatter",
            description="Formats data as LaTeX tables",
            content="Use booktabs rules for every table.",
            category="Scientific Writing",
            references=(SkillReference(name="booktabs", content="toprule midrule bottomrule"),),
        ),
        skill_factory(
            "statistical-analysis",
            description="Checks reported statistics",
            content="Report effect sizes next to p-values in every table.",
            category="Data Analysis",
        ),
        skill_factory(
            "peer-review",
            description="Drafts a referee report",
            content="List major and minor concerns.",
            category="Research Tools",
        ),
        skill_factory(
            "equation-formatter",
            description="Formats equations as LaTeX",
            content="Use align for derivations.",
            category="Scientific Writing",
        ),
    ]


@pytest.fixture
def store(catalog):
    return SkillStore(InMemorySkillSource(catalog))


class TestLoading:
    """Tests for catalog loading."""

    def test_load_all_is_idempotent(self, catalog):
        source = CountingSource(catalog)
        store = SkillStore(source)

        store.load_all()
        store.load_all()
        store.get("peer-review")

        assert source.loads == 1

    def test_concurrent_first_load_loads_once(self, catalog):
        source = CountingSource(catalog)
        store = SkillStore(source)

        threads = [threading.Thread(target=store.load_all) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert source.loads == 1
        assert len(store.all()) == 4

    def test_reload_rescans(self, catalog):
        source = CountingSource(catalog)
        store = SkillStore(source)
        store.load_all()

        source.skills = catalog[:1]
        store.reload()

        assert source.loads == 2
        assert [s.id for s in store.all()] == ["latex-table-formatter"]

    def test_duplicate_ids_keep_first(self, skill_factory):
        store = SkillStore(
            InMemorySkillSource(
                [
                    skill_factory("dup", description="first"),
                    skill_factory("dup", description="second"),
                ]
            )
        )

        assert store.get("dup").description == "first"
        assert len(store.all()) == 1


class TestLookup:
    """Tests for get and by_category."""

    def test_get_exact_id(self, store):
        assert store.get("peer-review").name == "peer-review"

    def test_get_unknown_returns_none(self, store):
        assert store.get("unknown") is None
        assert store.get("PEER-REVIEW") is None

    def test_by_category_in_catalog_order(self, store):
        grouped = store.by_category()

        assert list(grouped) == ["Scientific Writing", "Research Tools", "Data Analysis"]
        assert [s.id for s in grouped["Scientific Writing"]] == [
            "latex-table-formatter",
            "equation-formatter",
        ]

    def test_by_category_omits_empty(self, store):
        assert "Bioinformatics" not in store.by_category()

    def test_custom_category_listed_last(self, skill_factory):
        store = SkillStore(
            InMemorySkillSource(
                [
                    skill_factory("a", category="Zeta Lab"),
                    skill_factory("b", category="Other"),
                ]
            )
        )

        assert list(store.by_category()) == ["Other", "Zeta Lab"]


class TestSearch:
    """Tests for relevance search."""

    def test_exact_id_scores_highest(self, store):
        results = store.search("peer-review")

        assert results[0].skill.id == "peer-review"
        assert results[0].score >= 100

    def test_word_scoring_orders_results(self, store):
        results = store.search("latex table")

        ids = [r.skill.id for r in results]
        assert ids[0] == "latex-table-formatter"
        assert "equation-formatter" in ids
        assert "peer-review" not in ids

    def test_ties_keep_load_order(self, skill_factory):
        store = SkillStore(
            InMemorySkillSource(
                [
                    skill_factory("second-thing", description="widget helper"),
                    skill_factory("first-thing", description="widget helper"),
                ]
            )
        )

        results = store.search("widget")

        assert [r.skill.id for r in results] == ["second-thing", "first-thing"]
        assert results[0].score == results[1].score

    def test_category_named_in_query(self, store):
        results = store.search("research")

        assert results[0].skill.id == "peer-review"

    def test_only_positive_scores(self, store):
        assert store.search("zzzz") == []

    def test_blank_query_or_zero_limit(self, store):
        assert store.search("") == []
        assert store.search("   ") == []
        assert store.search("latex", limit=0) == []

    def test_limit(self, store):
        assert len(store.search("table", limit=1)) == 1

    def test_search_is_deterministic(self, store):
        first = [(r.skill.id, r.score) for r in store.search("table formats")]
        second = [(r.skill.id, r.score) for r in store.search("table formats")]

        assert first == second

    def test_result_to_dict(self, store):
        data = store.search("peer-review")[0].to_dict()

        assert data["id"] == "peer-review"
        assert data["relevanceScore"] >= 100


class TestReferences:
    """Tests for reference lookup."""

    def test_get_reference(self, store):
        skill = store.get("latex-table-formatter")

        assert store.get_reference(skill, "booktabs") == "toprule midrule bottomrule"

    def test_get_reference_by_id(self, store):
        assert store.get_reference("latex-table-formatter", "booktabs").startswith("toprule")

    def test_unknown_reference(self, store):
        assert store.get_reference("latex-table-formatter", "missing") is None
        assert store.get_reference("unknown-skill", "booktabs") is None

    def test_unreadable_reference(self, tmp_path, skill_factory):
        skill = skill_factory(
            "x", references=(SkillReference(name="gone", path=str(tmp_path / "gone.md")),)
        )
        store = SkillStore(InMemorySkillSource([skill]))

        assert store.get_reference(skill, "gone") is None
