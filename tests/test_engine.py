"""
Engine facade: host hooks, configuration and lifecycle.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from tuix import EngineConfig, TemplateCache, TemplateEngine, dump_nodes, expand
from tuix.errors import TemplateError, TemplateErrorKind

from tests.infrastructure.expand_utils import deep_containers
from tests.infrastructure.file_utils import write_template, write_tree


class TestExpandDocument:

    def test_page_document_keeps_metadata(self, engine, project):
        doc = engine.expand_document(
            "page:\n"
            "  id: settings\n"
            "  title: Settings\n"
            "  components:\n"
            "    - $if: {condition: $params.on, template: [{Text: {value: '{{ t }}'}}]}\n",
            project / "main.tui.yml",
            {"on": True, "t": "x"},
        )
        assert doc == {"page": {"id": "settings", "title": "Settings", "components": [{"Text": {"value": "x"}}]}}

    def test_list_document(self, engine, project):
        assert engine.expand_document("- Divider: {}\n", project / "m.yml") == [{"Divider": {}}]

    def test_module_level_expand(self, project):
        write_template(project, "x.template.yml", "- Text: {value: '{{ v }}'}\n")
        assert expand("- $include: {template: x, params: {v: 1}}\n", project / "main.tui.yml") == [
            {"Text": {"value": "1"}},
        ]

    def test_expand_file_missing_root(self, engine, project):
        with pytest.raises(TemplateError) as exc:
            engine.expand_file(project / "nope.tui.yml")
        assert exc.value.kind is TemplateErrorKind.TEMPLATE_NOT_FOUND


class TestDetectCircularReferences:

    def test_reports_chain(self, engine, project):
        write_tree(project, {
            "a.template.yml": "- $include: {template: b}\n",
            "b.template.yml": "- Container:\n    components:\n      - $include: {template: a}\n",
        })
        chain = engine.detect_circular_references("- $include: {template: a}\n", project / "main.tui.yml")
        a, b = (str((project / n).resolve()) for n in ("a.template.yml", "b.template.yml"))
        assert chain == [a, b, a]

    def test_follows_includes_behind_false_conditions(self, engine, project):
        write_template(project, "loop.template.yml", """
            - $if:
                condition: "false"
                template:
                  - $foreach:
                      items: $params.xs
                      as: x
                      template:
                        - $include: {template: loop}
        """)
        root = project / "loop.template.yml"
        chain = engine.detect_circular_references(root.read_text(encoding="utf-8"), root)
        assert chain == [str(root.resolve()), str(root.resolve())]

    def test_no_cycle(self, engine, project):
        write_template(project, "a.template.yml", "- Text: {value: a}\n")
        assert engine.detect_circular_references("- $include: {template: a}\n", project / "main.tui.yml") == []

    def test_never_raises(self, engine, project):
        write_template(project, "broken.template.yml", "- [unclosed\n")
        base = project / "main.tui.yml"
        assert engine.detect_circular_references("- $include: {template: missing}\n", base) == []
        assert engine.detect_circular_references("- $include: {template: broken}\n", base) == []
        assert engine.detect_circular_references("- [not yaml\n", base) == []
        assert engine.detect_circular_references("- $include: {template: '{{ dynamic }}'}\n", base) == []


class TestLifecycle:

    def test_cache_stats_and_invalidation(self, engine, project):
        path = write_template(project, "a.template.yml", "- Text: {value: a}\n")
        engine.expand("- $include: {template: a}\n", project / "main.tui.yml")
        engine.expand("- $include: {template: a}\n", project / "main.tui.yml")
        stats = engine.cache_stats()
        assert (stats.entries, stats.hits, stats.misses) == (1, 1, 1)
        assert engine.invalidate_template_cache(path) is True
        assert engine.invalidate_template_cache(path) is False
        assert engine.cache_stats().entries == 0

    def test_dispose(self, project):
        engine = TemplateEngine()
        engine.dispose()
        with pytest.raises(TemplateError):
            engine.expand("- Text: {}\n", project / "main.tui.yml")

    def test_shared_cache_between_engines(self, project):
        write_template(project, "a.template.yml", "- Text: {value: a}\n")
        first = TemplateEngine()
        second = TemplateEngine(cache=first.cache)
        first.expand("- $include: {template: a}\n", project / "m.yml")
        second.expand("- $include: {template: a}\n", project / "m.yml")
        assert first.cache_stats().hits == 1
        first.dispose()

    def test_injected_empty_cache_is_used(self, project):
        cache = TemplateCache()
        assert len(cache) == 0
        engine = TemplateEngine(cache=cache)
        assert engine.cache is cache
        write_template(project, "a.template.yml", "- Text: {value: a}\n")
        engine.expand("- $include: {template: a}\n", project / "m.yml")
        assert len(cache) == 1

    def test_dispose_leaves_injected_cache_alive(self, project):
        write_template(project, "a.template.yml", "- Text: {value: a}\n")
        cache = TemplateCache()
        with TemplateEngine(cache=cache) as short_lived:
            short_lived.expand("- $include: {template: a}\n", project / "m.yml")
        other = TemplateEngine(cache=cache)
        assert dump_nodes(other.expand("- $include: {template: a}\n", project / "m.yml")) == [{"Text": {"value": "a"}}]
        assert cache.stats().hits == 1
        cache.dispose()

    def test_dispose_closes_own_cache(self):
        engine = TemplateEngine()
        engine.dispose()
        with pytest.raises(RuntimeError):
            engine.cache.get_or_load("/nowhere.template.yml")


class TestDeepDocuments:

    def test_expand_reports_depth_exceeded(self, engine, project):
        with pytest.raises(TemplateError) as exc:
            engine.expand(deep_containers(2000), project / "main.tui.yml")
        assert exc.value.kind is TemplateErrorKind.DEPTH_EXCEEDED
        assert exc.value.template_path == str((project / "main.tui.yml").resolve())
        assert isinstance(exc.value.__cause__, RecursionError)

    def test_cycle_check_does_not_raise(self, engine, project):
        assert engine.detect_circular_references(deep_containers(2000), project / "main.tui.yml") == []


class TestConcurrentExpansion:

    def test_threads_sharing_one_engine_see_no_false_cycles(self, engine, project):
        write_tree(project, {
            "row.template.yml": """
                - Container:
                    components:
                      - Text: {value: "{{ $params.label }}"}
                      - $include: {template: leaf, params: {n: "{{ $params.label }}"}}
            """,
            "leaf.template.yml": "- Badge: {text: 'leaf {{ n }}'}\n",
        })
        doc = (
            "- $foreach:\n"
            "    items: $params.labels\n"
            "    as: label\n"
            "    template:\n"
            "      - $include: {template: row, params: {label: '{{ label }}'}}\n"
            "      - $include: {template: leaf, params: {n: '{{ label }}'}}\n"
        )
        labels = [f"r{i}" for i in range(20)]
        base = project / "main.tui.yml"

        def run(_):
            return dump_nodes(engine.expand(doc, base, {"labels": labels}))

        expected = run(None)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(run, range(64)))

        assert all(r == expected for r in results)
        assert len(expected) == 40
        assert engine.cache_stats().entries == 2


class TestEngineConfig:

    def test_defaults(self):
        cfg = EngineConfig()
        assert cfg.cache_ttl == 30 * 60
        assert cfg.max_entries == 1000
        assert cfg.max_include_depth == 32
        assert cfg.strict_params is False
        assert cfg.template_suffix == ".template.yml"

    def test_env_has_priority(self):
        cfg = EngineConfig.from_env(
            {"TUIX_CACHE_TTL": "5", "TUIX_CACHE_MAX_ENTRIES": "10", "TUIX_STRICT": "yes"},
            strict_params=False,
            max_entries=99,
        )
        assert cfg.cache_ttl == 5.0
        assert cfg.max_entries == 10
        assert cfg.strict_params is True

    @pytest.mark.parametrize("raw, expected", [("0", False), ("off", False), ("no", False), ("1", True), ("true", True)])
    def test_strict_flag_values(self, raw, expected):
        assert EngineConfig.from_env({"TUIX_STRICT": raw}).strict_params is expected

    def test_ttl_can_be_disabled(self):
        assert EngineConfig.from_env({"TUIX_CACHE_TTL": "off"}).cache_ttl is None

    def test_explicit_values_without_env(self):
        assert EngineConfig.from_env({}, strict_params=True).strict_params is True

    def test_invalid_numbers(self):
        with pytest.raises(ValueError):
            EngineConfig.from_env({"TUIX_CACHE_MAX_ENTRIES": "many"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("TUIX_STRICT", "1")
        assert EngineConfig.from_env().strict_params is True
        with TemplateEngine(EngineConfig.from_env()) as engine:
            assert engine.config.strict_params is True
