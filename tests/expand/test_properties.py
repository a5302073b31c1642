"""
End-to-end properties of expansion: ordering, short-circuiting, cycles,
cache behaviour and a performance smoke test.
"""

import os
import time

import pytest

from tuix.errors import TemplateError, TemplateErrorKind
from tuix.model import dump_nodes

from tests.infrastructure.expand_utils import expand_file, expand_text, texts
from tests.infrastructure.file_utils import write_template, write_tree

FOUR_BLOCKS = """
- $if:
    condition: $params.a
    template:
      - Text: {value: a}
- $if:
    condition: $params.b
    template:
      - Text: {value: b1}
      - Text: {value: b2}
- $if:
    condition: $params.c
    template:
      - Text: {value: c}
- $if:
    condition: $params.d
    template:
      - Text: {value: d}
"""


class TestIdempotence:

    def test_same_input_same_output(self, engine, project):
        write_template(project, "card.template.yml", "- Text: {value: '{{ $params.t }}'}\n")
        doc = """
            - Container:
                components:
                  - $include: {template: card, params: {t: "{{ title }}"}}
                  - $if: {condition: $params.more, template: [{Divider: {}}]}
        """
        params = {"title": "T", "more": True}
        first = expand_text(engine, project, doc, params)
        second = expand_text(engine, project, doc, params)
        assert first == second
        assert repr(first) == repr(second)


class TestFalsyIfDropsSubtree:

    def test_all_false(self, engine, project):
        out = expand_text(engine, project, FOUR_BLOCKS, {"a": False, "b": False, "c": False, "d": False})
        assert out == []

    def test_exactly_two_true_keep_order(self, engine, project):
        out = expand_text(engine, project, FOUR_BLOCKS, {"a": False, "b": True, "c": False, "d": True})
        assert texts(out) == ["b1", "b2", "d"]

    def test_all_true(self, engine, project):
        out = expand_text(engine, project, FOUR_BLOCKS, {"a": True, "b": True, "c": True, "d": True})
        assert texts(out) == ["a", "b1", "b2", "c", "d"]


class TestNestedIfShortCircuit:

    def test_false_outer_never_evaluates_inner(self, engine, project):
        out = expand_text(engine, project, """
            - $if:
                condition: "false"
                template:
                  - $if:
                      condition: "this is not valid"
                      template: [{Text: {value: x}}]
                  - $include:
                      template: does/not/exist.template.yml
                  - $if: {template: []}
                  - $unknown: {}
                  - Text: {value: "{{ $params.strict_would_fail }}"}
            - Text: {value: visible}
        """)
        assert texts(out) == ["visible"]

    def test_inner_is_evaluated_when_outer_is_true(self, engine, project):
        with pytest.raises(TemplateError) as exc:
            expand_text(engine, project, """
                - $if:
                    condition: "true"
                    template:
                      - $if: {condition: "this is not valid", template: []}
            """)
        assert exc.value.kind is TemplateErrorKind.CONDITION_EVALUATION


class TestConditionTruthiness:

    @pytest.mark.parametrize("condition, params, expected", [
        ("true", {}, True),
        ("false", {}, False),
        ("$params.role", {"role": "admin"}, True),
        ("$params.role", {"role": ""}, False),
        ("$params.role", {"role": None}, False),
        ("$params.role", {"role": True}, True),
        ("$params.role", {}, False),
    ])
    def test_table(self, engine, project, condition, params, expected):
        out = expand_text(engine, project, f"""
            - $if:
                condition: "{condition}"
                template: [{{Text: {{value: hit}}}}]
        """, params)
        assert (texts(out) == ["hit"]) is expected


class TestIncludeIfComposition:

    def test_forwarded_flags_gate_nested_branches(self, engine, project):
        write_tree(project, {
            "components/panel.template.yml": """
                - Container:
                    layout: vertical
                    components:
                      - Text: {value: "{{ $params.title }}"}
                      - $if:
                          condition: $params.showHelp
                          template:
                            - Alert: {variant: info, message: help}
                      - $if:
                          condition: $params.showFooter
                          template:
                            - Divider: {}
                            - Text: {value: footer}
            """,
            "main.tui.yml": """
                page:
                  id: main
                  components:
                    - $if:
                        condition: $params.panel
                        template:
                          - $include:
                              template: components/panel
                              params:
                                title: Settings
                                showHelp: "{{ $params.help }}"
                                showFooter: "{{ $params.footer }}"
            """,
        })
        out = expand_file(engine, project / "main.tui.yml", {"panel": True, "help": False, "footer": True})
        assert out == [{"Container": {"layout": "vertical", "components": [
            {"Text": {"value": "Settings"}},
            {"Divider": {}},
            {"Text": {"value": "footer"}},
        ]}}]

        assert expand_file(engine, project / "main.tui.yml", {"panel": False, "help": True, "footer": True}) == []


class TestCycles:

    def test_two_file_cycle(self, engine, project):
        write_tree(project, {
            "a.template.yml": "- $include: {template: b.template.yml}\n",
            "b.template.yml": "- $include: {template: a.template.yml}\n",
        })
        with pytest.raises(TemplateError) as exc:
            expand_file(engine, project / "a.template.yml")
        err = exc.value
        assert err.kind is TemplateErrorKind.CIRCULAR_REFERENCE
        a, b = (str((project / n).resolve()) for n in ("a.template.yml", "b.template.yml"))
        assert err.chain == [a, b, a]

    def test_cycle_not_involving_root(self, engine, project):
        write_tree(project, {
            "b.template.yml": "- $include: {template: c}\n",
            "c.template.yml": "- Text: {value: c}\n- $include: {template: b}\n",
        })
        with pytest.raises(TemplateError) as exc:
            expand_text(engine, project, "- $include: {template: b}\n")
        assert exc.value.kind is TemplateErrorKind.CIRCULAR_REFERENCE
        assert len(exc.value.chain) == 3

    def test_self_include(self, engine, project):
        write_template(project, "self.template.yml", "- $include: {template: self}\n")
        with pytest.raises(TemplateError) as exc:
            expand_file(engine, project / "self.template.yml")
        assert exc.value.kind is TemplateErrorKind.CIRCULAR_REFERENCE

    def test_deep_chain_without_cycle(self, engine, project):
        depth = 20
        for i in range(depth):
            write_template(project, f"level{i}.template.yml", f"- Text: {{value: 'L{i}'}}\n- $include: {{template: level{i + 1}}}\n")
        write_template(project, f"level{depth}.template.yml", "- Text: {value: end}\n")
        out = expand_text(engine, project, "- $include: {template: level0}\n")
        assert texts(out)[-1] == "end"
        assert len(out) == depth + 1

    def test_diamond_is_not_a_cycle(self, engine, project):
        write_tree(project, {
            "left.template.yml": "- $include: {template: shared}\n",
            "right.template.yml": "- $include: {template: shared}\n",
            "shared.template.yml": "- Text: {value: shared}\n",
        })
        out = expand_text(engine, project, "- $include: {template: left}\n- $include: {template: right}\n")
        assert texts(out) == ["shared", "shared"]


class TestMissingIncludeLeavesCleanFrame:

    def test_subsequent_call_succeeds(self, engine, project):
        write_template(project, "ok.template.yml", "- Text: {value: ok}\n")
        with pytest.raises(TemplateError) as exc:
            expand_text(engine, project, """
                - $include: {template: ok}
                - $include: {template: missing.template.yml}
            """)
        assert exc.value.kind is TemplateErrorKind.TEMPLATE_NOT_FOUND
        # ok.template.yml was on the frame during the failed call; a leaked
        # entry would turn this into a CircularReference
        assert texts(expand_text(engine, project, "- $include: {template: ok}\n- $include: {template: ok}\n")) == ["ok", "ok"]

    def test_failure_inside_include_releases_frame(self, engine, project):
        write_template(project, "outer.template.yml", "- $include: {template: missing}\n")
        with pytest.raises(TemplateError):
            expand_text(engine, project, "- $include: {template: outer}\n")
        write_template(project, "missing.template.yml", "- Text: {value: now here}\n")
        assert texts(expand_text(engine, project, "- $include: {template: outer}\n")) == ["now here"]


class TestPerformanceSmoke:

    def test_hundred_blocks_half_true(self, engine, project):
        lines = []
        params = {}
        for i in range(100):
            params[f"p{i}"] = i % 2 == 0
            lines.append(f"- $if:\n    condition: $params.p{i}\n    template:\n      - Text: {{value: 'block {i}'}}\n")
        started = time.perf_counter()
        out = dump_nodes(engine.expand("".join(lines), project / "main.tui.yml", params))
        elapsed = time.perf_counter() - started
        assert len(out) == 50
        assert texts(out)[:2] == ["block 0", "block 2"]
        assert elapsed < 3.0


class TestCacheCorrectness:

    def test_same_template_different_params(self, engine, project):
        write_template(project, "label.template.yml", "- Text: {value: '{{ $params.text }}'}\n")
        out = expand_text(engine, project, """
            - $include: {template: label, params: {text: first}}
            - $include: {template: label, params: {text: second}}
        """)
        assert texts(out) == ["first", "second"]
        stats = engine.cache_stats()
        assert stats.misses == 1
        assert stats.hits == 1

    def test_invalidate_picks_up_disk_change(self, engine, project):
        path = write_template(project, "label.template.yml", "- Text: {value: 'old {{ $params.x }}'}\n")
        doc = "- $include: {template: label, params: {x: 1}}\n"
        assert texts(expand_text(engine, project, doc)) == ["old 1"]

        st = path.stat()
        write_template(project, "label.template.yml", "- Text: {value: 'new {{ $params.x }}'}\n")
        # same size and mtime: only explicit invalidation can notice the change
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns))
        assert texts(expand_text(engine, project, doc)) == ["old 1"]
        assert engine.invalidate_template_cache(path) is True
        assert texts(expand_text(engine, project, doc)) == ["new 1"]
