"""Structural extraction for JavaScript, TypeScript and JSX sources.

Walks a tree-sitter tree with a dispatch table keyed by node type and emits
Function, Class, Import, Export, Variable, HookCall and Component entities.
Nodes without a handler are traversed generically, which is where branch
constructs and return statements are accounted to the enclosing function.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from diffinsight.config.models import AnalysisConfig
from diffinsight.diff.models import (
    ClassMethod,
    Entity,
    EntityKind,
    Parameter,
    StructuralModel,
)
from diffinsight.parsing.grammars import Grammar, language_for
from diffinsight.parsing.treesitter import TreeSitterParser, has_token, node_location, node_text

log = structlog.get_logger(__name__)

FUNCTION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "generator_function",
    }
)
BRANCH_NODES = frozenset(
    {
        "if_statement",
        "ternary_expression",
        "switch_case",
        "for_statement",
        "for_in_statement",
        "while_statement",
        "do_statement",
    }
)
LOGICAL_OPERATORS = frozenset({"&&", "||"})
MARKUP_NODES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
LIFECYCLE_METHODS = frozenset(
    {
        "componentDidMount",
        "componentDidUpdate",
        "componentWillUnmount",
        "shouldComponentUpdate",
        "getSnapshotBeforeUpdate",
        "getDerivedStateFromProps",
        "componentDidCatch",
    }
)

_LITERAL_NODES = frozenset(
    {"string", "number", "true", "false", "null", "undefined", "regex"}
)
_WRAPPER_CALLEES = frozenset({"memo", "forwardRef"})
_MODULE_CONTAINERS = frozenset({"program", "export_statement"})
_CLASS_NODES = frozenset({"class_declaration", "abstract_class_declaration", "class"})
_DECLARATION_NODES = frozenset({"lexical_declaration", "variable_declaration"})
_FIELD_NODES = frozenset({"field_definition", "public_field_definition"})
_TYPE_DECLARATIONS = frozenset(
    {"interface_declaration", "type_alias_declaration", "enum_declaration"}
)


@dataclass
class _Scope:
    """Per-function accumulator.

    Branches, returns, API calls, markup, hooks and event handlers inside a
    nested function or callback also count for every enclosing scope.
    """

    name: str | None
    parent: _Scope | None = None
    complexity: int = 1
    has_return: bool = False
    calls_api: bool = False
    has_markup: bool = False
    hooks: set[str] = field(default_factory=set)
    handlers: set[str] = field(default_factory=set)

    def chain(self) -> Iterator[_Scope]:
        scope: _Scope | None = self
        while scope is not None:
            yield scope
            scope = scope.parent


@dataclass(frozen=True, slots=True)
class _Context:
    owner: str | None = None  # qualified name prefix for nested entities
    scope: _Scope | None = None
    module_level: bool = True

    def descend(self) -> _Context:
        if not self.module_level:
            return self
        return _Context(self.owner, self.scope, module_level=False)


def _qualify(owner: str | None, name: str) -> str:
    return f"{owner}.{name}" if owner else name


def _string_value(node: Any) -> str:
    text = node_text(node)
    if len(text) >= 2 and text[0] in "\"'`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _default_kind(node: Any) -> str:
    if node.type in _LITERAL_NODES:
        return "literal"
    if node.type == "template_string" and not any(
        c.type == "template_substitution" for c in node.named_children
    ):
        return "literal"
    if node.type == "unary_expression":
        argument = node.child_by_field_name("argument")
        if argument is not None and argument.type == "number":
            return "literal"
    if node.type in ("array", "object") and not node.named_children:
        return "literal"
    return "complex"


def bound_names(pattern: Any) -> list[str]:
    """Identifiers introduced by a binding pattern."""
    if pattern is None:
        return []
    kind = pattern.type
    if kind in ("identifier", "shorthand_property_identifier_pattern"):
        return [node_text(pattern)]
    if kind == "pair_pattern":
        return bound_names(pattern.child_by_field_name("value"))
    if kind in ("object_assignment_pattern", "assignment_pattern"):
        return bound_names(pattern.child_by_field_name("left"))
    if kind == "rest_pattern":
        return [n for child in pattern.named_children for n in bound_names(child)]
    if kind in ("object_pattern", "array_pattern"):
        return [n for child in pattern.named_children for n in bound_names(child)]
    return []


def _pattern_members(pattern: Any) -> tuple[str, ...]:
    members: list[str] = []
    for child in pattern.named_children:
        kind = child.type
        if kind == "pair_pattern":
            members.append(node_text(child.child_by_field_name("key")))
        elif kind in ("object_assignment_pattern", "assignment_pattern"):
            members.append(node_text(child.child_by_field_name("left")))
        elif kind == "rest_pattern":
            members.append("..." + "".join(bound_names(child)))
        elif kind != "comment":
            members.append(node_text(child))
    return tuple(members)


def _parameter(node: Any) -> Parameter:
    kind = node.type
    if kind in ("required_parameter", "optional_parameter"):
        pattern = node.child_by_field_name("pattern")
        param = _parameter(pattern) if pattern is not None else Parameter(node_text(node))
        value = node.child_by_field_name("value")
        if value is not None:
            param = replace(param, has_default=True, default_kind=_default_kind(value))
        return param
    if kind == "assignment_pattern":
        param = _parameter(node.child_by_field_name("left"))
        right = node.child_by_field_name("right")
        return replace(param, has_default=True, default_kind=_default_kind(right))
    if kind == "rest_pattern":
        inner = node.named_children[0] if node.named_children else None
        param = _parameter(inner) if inner is not None else Parameter("")
        return replace(param, rest=True)
    if kind == "object_pattern":
        members = _pattern_members(node)
        return Parameter("{" + ", ".join(members) + "}", destructured=True, members=members)
    if kind == "array_pattern":
        members = _pattern_members(node)
        return Parameter("[" + ", ".join(members) + "]", destructured=True, members=members)
    return Parameter(node_text(node))


def parameters_of(node: Any) -> tuple[Parameter, ...]:
    params = node.child_by_field_name("parameters")
    if params is None:
        single = node.child_by_field_name("parameter")
        return (Parameter(node_text(single)),) if single is not None else ()
    return tuple(_parameter(p) for p in params.named_children if p.type != "comment")


def _callee_parts(call: Any) -> tuple[str, str | None]:
    """``(callee name, member object name)`` of a call expression."""
    callee = call.child_by_field_name("function")
    if callee is None:
        return "", None
    if callee.type == "member_expression":
        obj = callee.child_by_field_name("object")
        prop = callee.child_by_field_name("property")
        obj_name = node_text(obj) if obj is not None and obj.type == "identifier" else None
        return node_text(prop), obj_name
    if callee.type == "identifier":
        return node_text(callee), None
    return "", None


class _CodeWalker:
    """Single-use walker producing one StructuralModel."""

    def __init__(self, config: AnalysisConfig) -> None:
        self._config = config
        self._api_names = frozenset(config.api_call_names)
        self._tracked_hooks = frozenset(config.tracked_hooks)
        self._ui_bases = frozenset(config.ui_base_classes)
        self._frameworks = frozenset(config.framework_sources)
        self.model = StructuralModel()
        self._handlers: dict[str, Callable[[Any, _Context], None]] = {
            "function_declaration": self._visit_function_declaration,
            "generator_function_declaration": self._visit_function_declaration,
            "lexical_declaration": self._visit_variable_declaration,
            "variable_declaration": self._visit_variable_declaration,
            "import_statement": self._visit_import,
            "export_statement": self._visit_export,
            "call_expression": self._visit_call,
            "method_definition": self._visit_method,
            "field_definition": self._visit_field,
            "public_field_definition": self._visit_field,
            "pair": self._visit_pair,
            "assignment_expression": self._visit_assignment,
            "jsx_attribute": self._visit_jsx_attribute,
        }
        for kind in _CLASS_NODES:
            self._handlers[kind] = self._visit_class
        for kind in FUNCTION_NODES - {"function_declaration", "generator_function_declaration"}:
            self._handlers[kind] = self._visit_anonymous_function
        for kind in MARKUP_NODES:
            self._handlers[kind] = self._visit_markup

    def run(self, root: Any) -> StructuralModel:
        self.visit(root, _Context())
        self.model.sort_by_location()
        return self.model

    # =========================================================================
    # Traversal
    # =========================================================================

    def visit(self, node: Any, ctx: _Context) -> None:
        handler = self._handlers.get(node.type)
        if handler is not None:
            handler(node, ctx)
            return
        self._account(node, ctx.scope)
        child_ctx = ctx if node.type in _MODULE_CONTAINERS else ctx.descend()
        for child in node.named_children:
            self.visit(child, child_ctx)

    def _visit_children(self, node: Any, ctx: _Context) -> None:
        child_ctx = ctx.descend()
        for child in node.named_children:
            self.visit(child, child_ctx)

    @staticmethod
    def _account(node: Any, scope: _Scope | None) -> None:
        if scope is None:
            return
        kind = node.type
        branches = kind in BRANCH_NODES
        if kind == "binary_expression":
            operator = node.child_by_field_name("operator")
            branches = operator is not None and operator.type in LOGICAL_OPERATORS
        for s in scope.chain():
            if branches:
                s.complexity += 1
            elif kind == "return_statement":
                s.has_return = True

    # =========================================================================
    # Functions
    # =========================================================================

    def _function(
        self,
        node: Any,
        name: str,
        ctx: _Context,
        *,
        kind: str,
        binding: str | None = None,
        location_node: Any = None,
    ) -> _Scope:
        scope = _Scope(name=name, parent=ctx.scope)
        body = node.child_by_field_name("body")
        if node.type == "arrow_function" and body is not None and body.type != "statement_block":
            scope.has_return = True
        if body is not None:
            self.visit(body, _Context(owner=name, scope=scope, module_level=False))

        self.model.add(
            Entity(
                kind=EntityKind.FUNCTION,
                identity_key=name,
                attributes={
                    "name": name,
                    "kind": kind,
                    "binding": binding,
                    "params": parameters_of(node),
                    "is_async": has_token(node, "async"),
                    "is_generator": "generator" in node.type or has_token(node, "*"),
                    "has_return": scope.has_return,
                    "complexity": scope.complexity,
                    "calls_api": scope.calls_api,
                },
                location=node_location(location_node or node),
            )
        )

        short_name = name.rsplit(".", 1)[-1]
        if kind == "function" and short_name[:1].isupper() and scope.has_markup:
            self.model.add(
                Entity(
                    kind=EntityKind.COMPONENT,
                    identity_key=name,
                    attributes={
                        "name": name,
                        "form": "function",
                        "event_handlers": tuple(sorted(scope.handlers)),
                        "hooks": tuple(sorted(scope.hooks)),
                        "lifecycle": (),
                    },
                    location=node_location(location_node or node),
                )
            )
        return scope

    def _visit_function_declaration(self, node: Any, ctx: _Context) -> None:
        name = node_text(node.child_by_field_name("name")) or "<anonymous>"
        self._function(node, _qualify(ctx.owner, name), ctx, kind="function")

    def _visit_anonymous_function(self, node: Any, ctx: _Context) -> None:
        scope = _Scope(name=None, parent=ctx.scope)
        body = node.child_by_field_name("body")
        if body is not None:
            self.visit(body, _Context(owner=ctx.owner, scope=scope, module_level=False))

    def _visit_method(self, node: Any, ctx: _Context) -> None:
        name = node_text(node.child_by_field_name("name"))
        self._function(node, _qualify(ctx.owner, name), ctx, kind="method")

    def _visit_field(self, node: Any, ctx: _Context) -> None:
        name_node = node.child_by_field_name("property") or node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        if value is None:
            return
        if value.type in FUNCTION_NODES and name_node is not None:
            self._function(
                value,
                _qualify(ctx.owner, node_text(name_node)),
                ctx,
                kind="method",
                location_node=node,
            )
        else:
            self.visit(value, ctx.descend())

    def _visit_pair(self, node: Any, ctx: _Context) -> None:
        key = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
        if value is None:
            return
        key_name = _string_value(key) if key is not None else ""
        if value.type in FUNCTION_NODES and key_name:
            self._function(value, _qualify(ctx.owner, key_name), ctx, kind="method", location_node=node)
        elif value.type == "object" and key_name:
            self._visit_children(value, _Context(_qualify(ctx.owner, key_name), ctx.scope, False))
        else:
            self.visit(value, ctx.descend())

    def _visit_assignment(self, node: Any, ctx: _Context) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if (
            left is not None
            and right is not None
            and right.type in FUNCTION_NODES
            and left.type in ("identifier", "member_expression")
        ):
            self._function(right, node_text(left), ctx, kind="function", location_node=node)
            return
        self._visit_children(node, ctx)

    # =========================================================================
    # Declarations
    # =========================================================================

    def _visit_variable_declaration(self, node: Any, ctx: _Context) -> None:
        keyword = node.children[0].type if node.children else "var"
        declaration_kind = keyword if keyword in ("const", "let", "var") else "var"
        for declarator in node.named_children:
            if declarator.type == "variable_declarator":
                self._declarator(declarator, declaration_kind, ctx)

    def _declarator(self, node: Any, declaration_kind: str, ctx: _Context) -> None:
        name_node = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        name = node_text(name_node) if name_node is not None and name_node.type == "identifier" else None

        if name is not None and value is not None:
            if value.type in FUNCTION_NODES:
                self._function(
                    value,
                    _qualify(ctx.owner, name),
                    ctx,
                    kind="function",
                    binding=declaration_kind,
                    location_node=node,
                )
                return
            if value.type == "class":
                self._visit_class(value, ctx, name=name)
                return
            wrapped = self._wrapped_function(value)
            if wrapped is not None:
                self._function(
                    wrapped,
                    _qualify(ctx.owner, name),
                    ctx,
                    kind="function",
                    binding=declaration_kind,
                    location_node=node,
                )
                return

        if value is not None and value.type == "call_expression" and ctx.module_level:
            callee, _ = _callee_parts(value)
            if callee == "require":
                self._require_import(value, name_node)
                return

        if ctx.module_level and name_node is not None:
            for bound in bound_names(name_node):
                self.model.add(
                    Entity(
                        kind=EntityKind.VARIABLE,
                        identity_key=bound,
                        attributes={
                            "name": bound,
                            "declaration_kind": declaration_kind,
                            "has_initializer": value is not None,
                            "initializer_kind": value.type if value is not None else None,
                        },
                        location=node_location(node),
                    )
                )

        if value is not None:
            if value.type == "object" and name is not None:
                self._visit_children(value, _Context(_qualify(ctx.owner, name), ctx.scope, False))
            else:
                self.visit(value, ctx.descend())

    @staticmethod
    def _wrapped_function(value: Any) -> Any:
        """``memo(() => ...)`` / ``React.forwardRef(function ...)`` → inner function."""
        if value.type != "call_expression":
            return None
        callee, _ = _callee_parts(value)
        if callee not in _WRAPPER_CALLEES:
            return None
        arguments = value.child_by_field_name("arguments")
        if arguments is None or not arguments.named_children:
            return None
        first = arguments.named_children[0]
        return first if first.type in FUNCTION_NODES else None

    # =========================================================================
    # Classes
    # =========================================================================

    @staticmethod
    def _superclass(node: Any) -> str | None:
        heritage = next((c for c in node.children if c.type == "class_heritage"), None)
        if heritage is None:
            return None
        for child in heritage.named_children:
            if child.type == "implements_clause":
                continue
            if child.type == "extends_clause":
                value = child.child_by_field_name("value")
                if value is None and child.named_children:
                    value = child.named_children[0]
                return node_text(value) or None
            return node_text(child) or None
        return None

    @staticmethod
    def _class_methods(body: Any) -> tuple[ClassMethod, ...]:
        methods: list[ClassMethod] = []
        for member in body.named_children:
            if member.type == "method_definition":
                name = node_text(member.child_by_field_name("name"))
                if name == "constructor":
                    kind = "constructor"
                elif has_token(member, "get"):
                    kind = "getter"
                elif has_token(member, "set"):
                    kind = "setter"
                else:
                    kind = "method"
                methods.append(
                    ClassMethod(
                        name=name,
                        kind=kind,
                        static=has_token(member, "static"),
                        is_async=has_token(member, "async"),
                    )
                )
            elif member.type in _FIELD_NODES:
                value = member.child_by_field_name("value")
                name_node = member.child_by_field_name("property") or member.child_by_field_name(
                    "name"
                )
                if value is not None and value.type in FUNCTION_NODES and name_node is not None:
                    methods.append(
                        ClassMethod(
                            name=node_text(name_node),
                            kind="field",
                            static=has_token(member, "static"),
                            is_async=has_token(value, "async"),
                        )
                    )
        return tuple(methods)

    def _visit_class(self, node: Any, ctx: _Context, name: str | None = None) -> None:
        name_node = node.child_by_field_name("name")
        class_name = name or (node_text(name_node) if name_node is not None else "<anonymous class>")
        qualified = _qualify(ctx.owner, class_name)
        superclass = self._superclass(node)
        base_name = superclass.rsplit(".", 1)[-1].split("<", 1)[0] if superclass else None
        is_component = base_name in self._ui_bases
        body = node.child_by_field_name("body")
        methods = self._class_methods(body) if body is not None else ()

        class_scope = _Scope(name=qualified, parent=ctx.scope)
        if body is not None:
            self._visit_children(body, _Context(owner=qualified, scope=class_scope, module_level=False))

        location = node_location(node)
        self.model.add(
            Entity(
                kind=EntityKind.CLASS,
                identity_key=qualified,
                attributes={
                    "name": qualified,
                    "superclass": superclass,
                    "is_component": is_component,
                    "methods": methods,
                },
                location=location,
            )
        )
        if is_component:
            self.model.add(
                Entity(
                    kind=EntityKind.COMPONENT,
                    identity_key=qualified,
                    attributes={
                        "name": qualified,
                        "form": "class",
                        "event_handlers": tuple(sorted(class_scope.handlers)),
                        "hooks": tuple(sorted(class_scope.hooks)),
                        "lifecycle": tuple(m.name for m in methods if m.name in LIFECYCLE_METHODS),
                    },
                    location=location,
                )
            )

    # =========================================================================
    # Modules
    # =========================================================================

    def _add_import(self, source: str, bindings: list[str], default: str | None, node: Any) -> None:
        is_framework = source in self._frameworks or any(
            source.startswith(f"{fw}/") for fw in self._frameworks
        )
        self.model.add(
            Entity(
                kind=EntityKind.IMPORT,
                identity_key=source,
                attributes={
                    "source": source,
                    "bindings": tuple(bindings),
                    "default_binding": default,
                    "is_framework": is_framework,
                },
                location=node_location(node),
            )
        )

    def _visit_import(self, node: Any, ctx: _Context) -> None:  # noqa: ARG002
        source_node = node.child_by_field_name("source")
        if source_node is None:
            return
        bindings: list[str] = []
        default: str | None = None
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is not None:
            for part in clause.named_children:
                if part.type == "identifier":
                    default = node_text(part)
                    bindings.append(default)
                elif part.type == "namespace_import":
                    bindings.extend(node_text(c) for c in part.named_children if c.type == "identifier")
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        alias = spec.child_by_field_name("alias")
                        bindings.append(node_text(alias or spec.child_by_field_name("name")))
        self._add_import(_string_value(source_node), bindings, default, node)

    def _require_import(self, call: Any, name_node: Any) -> None:
        arguments = call.child_by_field_name("arguments")
        first = arguments.named_children[0] if arguments is not None and arguments.named_children else None
        if first is None or first.type != "string":
            return
        names = bound_names(name_node) if name_node is not None else []
        default = names[0] if name_node is not None and name_node.type == "identifier" else None
        self._add_import(_string_value(first), names, default, call)

    def _declared_names(self, declaration: Any) -> list[str]:
        if declaration.type in _DECLARATION_NODES:
            return [
                name
                for declarator in declaration.named_children
                if declarator.type == "variable_declarator"
                for name in bound_names(declarator.child_by_field_name("name"))
            ]
        name_node = declaration.child_by_field_name("name")
        return [node_text(name_node)] if name_node is not None else []

    def _add_export(self, key: str, node: Any, **attributes: Any) -> None:
        self.model.add(
            Entity(
                kind=EntityKind.EXPORT,
                identity_key=key,
                attributes={
                    "name": key,
                    "is_default": key == "default",
                    "target": attributes.get("target"),
                    "declaration_kind": attributes.get("declaration_kind"),
                    "source": attributes.get("source"),
                },
                location=node_location(node),
            )
        )

    def _visit_export(self, node: Any, ctx: _Context) -> None:
        is_default = has_token(node, "default")
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        source_node = node.child_by_field_name("source")
        source = _string_value(source_node) if source_node is not None else None
        module_ctx = _Context(owner=ctx.owner, scope=ctx.scope, module_level=True)

        if declaration is not None:
            names = self._declared_names(declaration)
            if declaration.type in _DECLARATION_NODES:
                declaration_kind = declaration.children[0].type
            elif declaration.type in _TYPE_DECLARATIONS:
                declaration_kind = declaration.type.removesuffix("_declaration")
            elif declaration.type in _CLASS_NODES:
                declaration_kind = "class"
            else:
                declaration_kind = "function"
            if is_default:
                self._add_export(
                    "default",
                    node,
                    target=names[0] if names else None,
                    declaration_kind=declaration_kind,
                )
            else:
                for name in names:
                    self._add_export(name, node, target=name, declaration_kind=declaration_kind)
            self.visit(declaration, module_ctx)
            return

        if value is not None:
            target: str
            if value.type in FUNCTION_NODES:
                name_node = value.child_by_field_name("name")
                target = node_text(name_node) if name_node is not None else "default"
                self._function(value, target, ctx, kind="function", location_node=node)
            elif value.type in _CLASS_NODES:
                name_node = value.child_by_field_name("name")
                target = node_text(name_node) if name_node is not None else "default"
                self._visit_class(value, ctx, name=target)
            elif value.type == "identifier":
                target = node_text(value)
            else:
                target = node_text(value) if value.type == "member_expression" else value.type
                self.visit(value, module_ctx.descend())
            self._add_export("default", node, target=target, declaration_kind="expression")
            return

        clause = next((c for c in node.named_children if c.type == "export_clause"), None)
        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                local = node_text(spec.child_by_field_name("name"))
                alias = spec.child_by_field_name("alias")
                self._add_export(node_text(alias) if alias is not None else local, node, target=local, source=source)
            return

        namespace = next((c for c in node.named_children if c.type == "namespace_export"), None)
        if namespace is not None:
            alias = next((c for c in namespace.named_children if c.type == "identifier"), None)
            if alias is not None:
                self._add_export(node_text(alias), node, target="*", source=source)
                return
        if has_token(node, "*") and source is not None:
            self._add_export(f"* from {source}", node, target="*", source=source)

    # =========================================================================
    # Calls and markup
    # =========================================================================

    def _is_hook(self, name: str) -> bool:
        prefix = self._config.hook_prefix
        if not prefix or not name.startswith(prefix):
            return False
        rest = name[len(prefix) :]
        return not rest or rest[0].isupper()

    def _visit_call(self, node: Any, ctx: _Context) -> None:
        callee, obj_name = _callee_parts(node)
        scope = ctx.scope

        if scope is not None and (callee in self._api_names or obj_name in self._api_names):
            for s in scope.chain():
                s.calls_api = True

        if callee and self._is_hook(callee):
            self.model.add(
                Entity(
                    kind=EntityKind.HOOK_CALL,
                    identity_key=callee,
                    attributes={
                        "name": callee,
                        "custom": callee not in self._tracked_hooks,
                        "owner": scope.name if scope is not None else None,
                    },
                    location=node_location(node),
                )
            )
            if scope is not None:
                for s in scope.chain():
                    s.hooks.add(callee)

        self._visit_children(node, ctx)

    def _visit_markup(self, node: Any, ctx: _Context) -> None:
        if ctx.scope is not None:
            for s in ctx.scope.chain():
                s.has_markup = True
        self._visit_children(node, ctx)

    def _visit_jsx_attribute(self, node: Any, ctx: _Context) -> None:
        name_node = node.named_children[0] if node.named_children else None
        name = node_text(name_node)
        if ctx.scope is not None and len(name) > 2 and name.startswith("on") and name[2].isupper():
            for s in ctx.scope.chain():
                s.handlers.add(name)
        self._visit_children(node, ctx)


def build_code_model(root: Any, config: AnalysisConfig) -> StructuralModel:
    """Build the Structural Model for an already-parsed program node."""
    return _CodeWalker(config).run(root)


def extract_code(
    content: str,
    grammar: Grammar,
    *,
    path: str,
    parser: TreeSitterParser,
    config: AnalysisConfig,
) -> StructuralModel:
    """Parse and extract one version of a code artifact.

    Raises:
        ExtractionError: If the grammar rejects ``content``.
    """
    language = language_for(grammar, path) or "javascript"
    result = parser.parse(content, language, path)
    model = build_code_model(result.root_node, config)
    log.debug("code_extracted", path=path, language=language, entities=len(model))
    return model
