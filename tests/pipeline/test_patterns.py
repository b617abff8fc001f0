"""Tests for the pattern tier detectors."""

from __future__ import annotations

import pytest

from diffinsight.core.errors import ErrorCode, ExtractionError
from diffinsight.diff.models import ChangeRecord, ChangeType, EntityKind
from diffinsight.parsing.grammars import Grammar
from diffinsight.pipeline.patterns import detect_patterns, selector_category, split_diff


def patch_text(removed: list[str], added: list[str], path: str = "file") -> str:
    lines = [f"--- a/{path}", f"+++ b/{path}", "@@ -1,1 +1,1 @@"]
    lines.extend(f"-{line}" for line in removed)
    lines.extend(f"+{line}" for line in added)
    return "\n".join(lines) + "\n"


def find(records: list[ChangeRecord], kind: EntityKind, key: str) -> ChangeRecord:
    matches = [r for r in records if r.entity_kind == kind and r.identity_key == key]
    assert len(matches) == 1, records
    return matches[0]


class TestSplitDiff:
    def test_headers_and_context_skipped(self) -> None:
        text = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n context\n-old\n+new\n"

        lines = split_diff(text)

        assert lines.added == ("new",)
        assert lines.removed == ("old",)

    def test_marker_lookalikes_inside_hunk_kept(self) -> None:
        text = "diff --git a/t.css b/t.css\n--- a/t.css\n+++ b/t.css\n@@ -1,2 +1,2 @@\n---brand: red;\n+++i;\n"

        lines = split_diff(text)

        assert lines.removed == ("--brand: red;",)
        assert lines.added == ("++i;",)

    def test_bare_lines_without_hunk_header(self) -> None:
        assert split_diff("+a\n-b\n").added == ("a",)


class TestCodePatterns:
    def test_imports_and_functions(self) -> None:
        # Given
        text = patch_text(
            removed=["const legacy = require('legacy-lib');", "function oldHelper() {"],
            added=[
                "import { debounce } from 'lodash';",
                "export async function loadUser(id) {",
                "const onSave = async () => {",
            ],
        )

        # When
        records = detect_patterns("src/app.js", text, Grammar.CODE_PLAIN)

        # Then
        assert find(records, EntityKind.IMPORT, "lodash").change_type == ChangeType.ADDED
        assert find(records, EntityKind.IMPORT, "legacy-lib").change_type == ChangeType.REMOVED
        assert find(records, EntityKind.FUNCTION, "loadUser").change_type == ChangeType.ADDED
        assert find(records, EntityKind.FUNCTION, "onSave").change_type == ChangeType.ADDED
        assert find(records, EntityKind.FUNCTION, "oldHelper").change_type == ChangeType.REMOVED

    def test_hook_call_deltas(self) -> None:
        text = patch_text(
            removed=["const [a] = useState(0);"],
            added=["const [a] = useState(0);", "const [b] = useState(1);", "useEffect(() => {});"],
        )

        records = detect_patterns("src/App.jsx", text, Grammar.CODE_WITH_MARKUP)

        use_state = find(records, EntityKind.HOOK_CALL, "useState")
        assert (use_state.change_type, use_state.count) == (ChangeType.ADDED, 1)
        assert find(records, EntityKind.HOOK_CALL, "useEffect").count == 1

    def test_jquery_and_logic_facts(self) -> None:
        text = patch_text(
            removed=[],
            added=[
                "$('#save').on('click', save);",
                "if (ready) {",
                "try {",
            ],
        )

        records = detect_patterns("legacy.js", text, Grammar.CODE_PLAIN)

        assert find(records, EntityKind.SELECTOR, "#save").details == ("jQuery selector",)
        assert find(records, EntityKind.FILE, "event binding").details == ("event handler bound",)
        find(records, EntityKind.FILE, "conditional logic")
        find(records, EntityKind.FILE, "error handling")


class TestStylesheetPatterns:
    def test_selectors_at_rules_and_facts(self) -> None:
        # Given
        text = patch_text(
            removed=[".old-card {"],
            added=[
                ".card, #hero {",
                "  display: flex;",
                "  transition: opacity 0.2s;",
                "  color: #FFF;",
                "  --gap: 4px;",
                "}",
                "@media (max-width: 600px) {",
                "@keyframes pulse {",
                "  from { opacity: 0; }",
                ".card:hover {",
            ],
        )

        # When
        records = detect_patterns("site.css", text, Grammar.STYLESHEET_PLAIN)

        # Then
        assert find(records, EntityKind.SELECTOR, ".card").details == ("class selector",)
        assert find(records, EntityKind.SELECTOR, "#hero").details == ("id selector",)
        assert find(records, EntityKind.SELECTOR, ".old-card").change_type == ChangeType.REMOVED
        assert not [r for r in records if r.identity_key == "from"]
        assert find(records, EntityKind.AT_RULE, "@media (max-width: 600px)").details == (
            "breakpoint max-width: 600px",
        )
        find(records, EntityKind.AT_RULE, "@keyframes pulse")
        assert find(records, EntityKind.DECLARATION, "--gap").details == ("CSS variable --gap",)
        assert find(records, EntityKind.FILE, "flexbox layout").details == ("display: flex on 1 container",)
        find(records, EntityKind.FILE, "transitions")
        assert find(records, EntityKind.FILE, "colors").details == ("#ffffff",)
        assert find(records, EntityKind.FILE, ":hover").change_type == ChangeType.ADDED

    @pytest.mark.parametrize(
        ("selector", "category"),
        [(".a", "class"), ("#a", "id"), ("[href]", "attribute"), ("button", "element"), (".a > .b", "complex")],
    )
    def test_selector_category(self, selector: str, category: str) -> None:
        assert selector_category(selector) == category

    def test_scss_preprocessor_signals(self) -> None:
        # Given
        text = patch_text(
            removed=[],
            added=[
                "$primary: #333;",
                "@mixin card-shadow {",
                "}",
                ".a {",
                "  @include card-shadow;",
                "  .b {",
                "    .c {",
                "      &:hover { color: $primary; }",
                "    }",
                "  }",
                "}",
            ],
        )

        # When
        records = detect_patterns("theme.scss", text, Grammar.STYLESHEET_NESTED)

        # Then
        assert find(records, EntityKind.VARIABLE, "$primary").change_type == ChangeType.ADDED
        find(records, EntityKind.AT_RULE, "@mixin card-shadow")
        assert find(records, EntityKind.FILE, "mixin usage").details == ("card-shadow",)
        warning = find(records, EntityKind.FILE, "nesting depth")
        assert warning.change_type == ChangeType.WARNING
        assert warning.after == "4"

    def test_preprocessor_detectors_skip_plain_css(self) -> None:
        text = patch_text(removed=[], added=["$x: 1;", ".a { color: red; }"])

        records = detect_patterns("plain.css", text, Grammar.STYLESHEET_PLAIN)

        assert not [r for r in records if r.entity_kind == EntityKind.VARIABLE]


class TestMarkupPatterns:
    def test_elements_and_attributes(self) -> None:
        # Given
        text = patch_text(
            removed=['<div class="legacy">'],
            added=[
                '<nav id="menu" class="top" aria-label="Main">',
                '  <a href="https://example.com" target="_blank">Out</a>',
                '  <input type="email" data-field="mail">',
                '  <img src="x.png">',
                '<script src="/app.js"></script>',
            ],
        )

        # When
        records = detect_patterns("index.html", text, Grammar.MARKUP)

        # Then
        find(records, EntityKind.MARKUP_ELEMENT, "nav")
        assert find(records, EntityKind.MARKUP_ELEMENT, "a").details == (
            "1 external link",
            "1 link opening in a new tab",
        )
        find(records, EntityKind.MARKUP_ELEMENT, "input[type=email]")
        find(records, EntityKind.MARKUP_ELEMENT, "script[src=/app.js]")
        find(records, EntityKind.MARKUP_ELEMENT, "#menu")
        assert find(records, EntityKind.MARKUP_ELEMENT, ".legacy").change_type == ChangeType.REMOVED
        assert find(records, EntityKind.FILE, "accessibility attributes").details == ("aria-label",)
        assert find(records, EntityKind.FILE, "data attributes").details == ("data-field",)
        missing_alt = [r for r in records if r.is_warning]
        assert [r.details for r in missing_alt] == [("1 image without alt text",)]


class TestFailures:
    def test_unknown_grammar_unsupported(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            detect_patterns("notes.txt", patch_text([], ["hello"]), Grammar.UNKNOWN)

        assert exc_info.value.code == ErrorCode.UNSUPPORTED_GRAMMAR

    def test_no_signal_is_empty_result(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            detect_patterns("a.js", patch_text(["x = 1;"], ["x = 2;"]), Grammar.CODE_PLAIN)

        assert exc_info.value.code == ErrorCode.EMPTY_RESULT
