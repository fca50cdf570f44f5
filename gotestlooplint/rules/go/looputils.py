"""Loop discovery and loop variable extraction for Go syntax trees."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from gotestlooplint.ast_extractors.go_impl import find_child_by_type, get_node_text
from gotestlooplint.symbols import Symbol, SymbolTable

LOOP_NODE_TYPE = "for_statement"


@dataclass(frozen=True)
class CountingLoop:
    """`for init; cond; post { ... }`, including the `for cond {}` and `for {}` forms."""

    node: Any
    init: Any | None
    condition: Any | None
    post: Any | None
    body: Any


@dataclass(frozen=True)
class CollectionLoop:
    """`for k, v := range source { ... }`."""

    node: Any
    key: Any | None
    value: Any | None
    source: Any | None
    body: Any


LoopNode = CountingLoop | CollectionLoop


def iter_loops(root: Any) -> Iterator[Any]:
    """Yield every for statement under root, at any depth, in pre-order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == LOOP_NODE_TYPE:
            yield node
        stack.extend(reversed(node.children))


def as_loop_node(node: Any) -> LoopNode:
    """Classify a for statement.

    Raises:
        ValueError: node is not a for statement, or has no body
    """
    if node.type != LOOP_NODE_TYPE:
        raise ValueError(f"unexpected node type: {node.type}")

    body = node.child_by_field_name("body")
    if body is None:
        raise ValueError(f"for statement without a body at line {node.start_point[0] + 1}")

    range_clause = find_child_by_type(node, "range_clause")
    if range_clause is not None:
        left = range_clause.child_by_field_name("left")
        bindings = []
        if left is not None:
            bindings = left.named_children if left.type == "expression_list" else [left]
        return CollectionLoop(
            node=node,
            key=bindings[0] if len(bindings) > 0 else None,
            value=bindings[1] if len(bindings) > 1 else None,
            source=range_clause.child_by_field_name("right"),
            body=body,
        )

    for_clause = find_child_by_type(node, "for_clause")
    if for_clause is not None:
        return CountingLoop(
            node=node,
            init=for_clause.child_by_field_name("initializer"),
            condition=for_clause.child_by_field_name("condition"),
            post=for_clause.child_by_field_name("update"),
            body=body,
        )

    # `for cond {}` / `for {}`
    condition = None
    for child in node.named_children:
        if child.type not in ("block", "comment"):
            condition = child
            break
    return CountingLoop(node=node, init=None, condition=condition, post=None, body=body)


def get_loop_body(loop: LoopNode) -> Any:
    return loop.body


def get_loop_var_identifiers(loop: LoopNode) -> list[Any]:
    """Identifier nodes bound by the loop header.

    `for A, B := range ...` gives A and B; `for A := 0, ...; ...; ... {}` gives
    the left side of the initializer, where `for s.i = 0; ...` gives the
    field `i`. Blank identifiers and other shapes (`for m[k] = range ...`)
    are left out.
    """
    if isinstance(loop, CollectionLoop):
        candidates = [loop.key, loop.value]
    elif loop.init is not None and loop.init.type in ("short_var_declaration", "assignment_statement"):
        left = loop.init.child_by_field_name("left")
        if left is None:
            return []
        candidates = left.named_children if left.type == "expression_list" else [left]
        candidates = [
            node.child_by_field_name("field") if node.type == "selector_expression" else node
            for node in candidates
        ]
    else:
        return []

    return [
        node
        for node in candidates
        if node is not None
        and node.type in ("identifier", "field_identifier")
        and get_node_text(node) != "_"
    ]


def get_loop_variables(loop: LoopNode, symbols: SymbolTable) -> frozenset[Symbol]:
    """The LoopVariableSet: Symbols of the identifiers the loop header binds."""
    objects = (symbols.object_of(ident) for ident in get_loop_var_identifiers(loop))
    return frozenset(obj for obj in objects if obj is not None)


def enclosing_test_function(node: Any) -> str | None:
    """Name of the `func TestXxx(...)` a node sits in, or None.

    Closures are looked through. Methods never count: a method that happens
    to be named Test<Something> is not a test.
    """
    current = node.parent
    while current is not None:
        if current.type == "method_declaration":
            return None
        if current.type == "function_declaration":
            name = get_node_text(current.child_by_field_name("name"))
            return name if name.startswith("Test") else None
        current = current.parent
    return None
