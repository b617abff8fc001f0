"""Tests for JavaScript / TypeScript structural extraction."""

from __future__ import annotations

import pytest

from diffinsight.config.models import AnalysisConfig
from diffinsight.diff.models import EntityKind, StructuralModel
from diffinsight.extraction.code import extract_code
from diffinsight.parsing.grammars import select_grammar
from diffinsight.parsing.treesitter import TreeSitterParser


@pytest.fixture
def extract():
    parser = TreeSitterParser()
    config = AnalysisConfig()

    def _extract(source: str, path: str = "src/app.js") -> StructuralModel:
        return extract_code(
            source,
            select_grammar(path, source),
            path=path,
            parser=parser,
            config=config,
        )

    return _extract


def keys(model: StructuralModel, kind: EntityKind) -> list[str]:
    return [e.identity_key for e in model.of_kind(kind)]


class TestFunctions:
    """Function entities and their attributes."""

    def test_declaration_attributes(self, extract) -> None:
        # Given
        source = (
            "async function login(username, password, rememberMe = false) {\n"
            "  if (!username || !password) {\n"
            "    throw new Error('missing');\n"
            "  }\n"
            "  const response = await fetch('/api/login');\n"
            "  return response.json();\n"
            "}\n"
        )

        # When
        model = extract(source)

        # Then
        (fn,) = model.of_kind(EntityKind.FUNCTION)
        assert fn.identity_key == "login"
        assert fn.get("is_async") is True
        assert fn.get("complexity") == 3
        assert fn.get("calls_api") is True
        assert fn.get("has_return") is True
        names = [p.name for p in fn.get("params")]
        assert names == ["username", "password", "rememberMe"]
        assert fn.get("params")[2].has_default
        assert fn.get("params")[2].default_kind == "literal"

    def test_callback_branches_count_for_enclosing_function(self, extract) -> None:
        # Given
        source = "function handle(items) {\n  return items.filter((x) => x.a && x.b ? x.c || x.d : false);\n}\n"

        # When
        (fn,) = extract(source).of_kind(EntityKind.FUNCTION)

        # Then
        assert fn.get("complexity") == 4

    def test_return_inside_effect_callback_marks_component(self, extract) -> None:
        source = (
            "function Panel({ id }) {\n"
            "  useEffect(() => {\n"
            "    if (!id) { return; }\n"
            "    const timer = setInterval(tick, 1000);\n"
            "    return () => clearInterval(timer);\n"
            "  }, [id]);\n"
            "  useEffect(() => { document.title = id; });\n"
            "  const rows = [];\n"
            "}\n"
        )

        fn = next(e for e in extract(source).of_kind(EntityKind.FUNCTION) if e.identity_key == "Panel")

        assert fn.get("complexity") == 2
        assert fn.get("has_return") is True

    def test_arrow_function_binding(self, extract) -> None:
        model = extract("const double = (x) => x * 2;\n")

        (fn,) = model.of_kind(EntityKind.FUNCTION)
        assert fn.identity_key == "double"
        assert fn.get("binding") == "const"
        assert fn.get("has_return") is True  # expression body

    def test_anonymous_callbacks_are_not_entities(self, extract) -> None:
        model = extract("items.forEach(function (item) { console.log(item); });\n")

        assert model.of_kind(EntityKind.FUNCTION) == []

    def test_object_methods_are_qualified(self, extract) -> None:
        source = "const api = {\n  fetchUser() { return 1; },\n  save: async function () {},\n};\n"

        model = extract(source)

        assert keys(model, EntityKind.FUNCTION) == ["api.fetchUser", "api.save"]
        assert keys(model, EntityKind.VARIABLE) == ["api"]

    def test_destructured_parameter_members(self, extract) -> None:
        model = extract("function render({ title, body = '' }, ...rest) {}\n")

        first, second = model.of_kind(EntityKind.FUNCTION)[0].get("params")
        assert first.destructured
        assert first.members == ("title", "body")
        assert second.rest
        assert second.name == "rest"

    def test_generator(self, extract) -> None:
        model = extract("function* ids() { yield 1; }\n")

        assert model.of_kind(EntityKind.FUNCTION)[0].get("is_generator") is True


class TestModules:
    """Imports, requires and exports."""

    def test_es_import_bindings(self, extract) -> None:
        model = extract("import React, { useState as useS } from 'react';\n", "src/App.jsx")

        (imp,) = model.of_kind(EntityKind.IMPORT)
        assert imp.identity_key == "react"
        assert imp.get("bindings") == ("React", "useS")
        assert imp.get("default_binding") == "React"
        assert imp.get("is_framework") is True

    def test_require_is_an_import(self, extract) -> None:
        model = extract("const fs = require('fs');\n")

        (imp,) = model.of_kind(EntityKind.IMPORT)
        assert imp.identity_key == "fs"
        assert imp.get("default_binding") == "fs"
        assert model.of_kind(EntityKind.VARIABLE) == []

    def test_named_and_default_exports(self, extract) -> None:
        source = (
            "export const limit = 10;\n"
            "export function helper() {}\n"
            "export default function main() {}\n"
        )

        model = extract(source)

        exports = {e.identity_key: e for e in model.of_kind(EntityKind.EXPORT)}
        assert set(exports) == {"limit", "helper", "default"}
        assert exports["limit"].get("declaration_kind") == "const"
        assert exports["default"].get("target") == "main"
        assert keys(model, EntityKind.FUNCTION) == ["helper", "main"]

    def test_re_export_records_source(self, extract) -> None:
        model = extract("export { a as b } from './mod';\n")

        (export,) = model.of_kind(EntityKind.EXPORT)
        assert export.identity_key == "b"
        assert export.get("target") == "a"
        assert export.get("source") == "./mod"

    def test_typed_exports(self, extract) -> None:
        source = (
            "export interface User {\n  id: number;\n}\n"
            "export function greet(name: string): string {\n  return name;\n}\n"
        )

        model = extract(source, "src/user.ts")

        exports = {e.identity_key: e.get("declaration_kind") for e in model.of_kind(EntityKind.EXPORT)}
        assert exports == {"User": "interface", "greet": "function"}
        params = model.of_kind(EntityKind.FUNCTION)[0].get("params")
        assert [p.name for p in params] == ["name"]


class TestComponentsAndHooks:
    """UI components, hook calls and event handlers."""

    def test_function_component(self, extract) -> None:
        # Given
        source = (
            "import React, { useState } from 'react';\n"
            "export default function Counter() {\n"
            "  const [count, setCount] = useState(0);\n"
            "  return <button onClick={() => setCount(count + 1)}>{count}</button>;\n"
            "}\n"
        )

        # When
        model = extract(source, "src/Counter.jsx")

        # Then
        (component,) = model.of_kind(EntityKind.COMPONENT)
        assert component.identity_key == "Counter"
        assert component.get("form") == "function"
        assert component.get("hooks") == ("useState",)
        assert component.get("event_handlers") == ("onClick",)
        (hook,) = model.of_kind(EntityKind.HOOK_CALL)
        assert hook.get("owner") == "Counter"
        assert hook.get("custom") is False

    def test_lowercase_function_with_markup_is_not_component(self, extract) -> None:
        model = extract("function render() { return <div />; }\n", "src/r.jsx")

        assert model.of_kind(EntityKind.COMPONENT) == []

    def test_custom_hook_flagged(self, extract) -> None:
        model = extract("function Widget() { const user = useCurrentUser(); return <p>{user}</p>; }\n", "w.jsx")

        (hook,) = model.of_kind(EntityKind.HOOK_CALL)
        assert hook.identity_key == "useCurrentUser"
        assert hook.get("custom") is True

    def test_class_component_lifecycle(self, extract) -> None:
        # Given
        source = (
            "class Panel extends React.Component {\n"
            "  componentDidMount() {}\n"
            "  static get defaults() { return {}; }\n"
            "  render() { return <div />; }\n"
            "}\n"
        )

        # When
        model = extract(source, "src/Panel.jsx")

        # Then
        (cls,) = model.of_kind(EntityKind.CLASS)
        assert cls.get("superclass") == "React.Component"
        assert cls.get("is_component") is True
        kinds = {m.name: (m.kind, m.static) for m in cls.get("methods")}
        assert kinds["defaults"] == ("getter", True)
        (component,) = model.of_kind(EntityKind.COMPONENT)
        assert component.get("form") == "class"
        assert component.get("lifecycle") == ("componentDidMount",)
        assert "Panel.render" in keys(model, EntityKind.FUNCTION)
