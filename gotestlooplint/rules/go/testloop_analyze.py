"""Go Test Loop Variable Capture Analyzer.

Detects loop variables referenced from closures that run after the loop has
moved on:

    for _, tc := range cases {
        t.Run(tc.name, func(t *testing.T) {
            t.Parallel()
            check(tc)  // tc may already hold a later case
        })
    }

    for _, tc := range cases {
        It("works", func() {
            Expect(run(tc)).To(Succeed())  // runs after the loop finished
        })
    }

A subtest closure is only flagged after its own `t.Parallel()` call: code
before that call runs synchronously inside `t.Run`. A Ginkgo `It` closure is
always deferred to the spec runner, so every reference counts.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gotestlooplint.ast_extractors.go_impl import find_children_by_type, get_node_text, node_position
from gotestlooplint.rules.base import Confidence, Diagnostic, RuleContext, RuleMetadata, Severity
from gotestlooplint.rules.go.looputils import (
    as_loop_node,
    enclosing_test_function,
    get_loop_body,
    get_loop_variables,
    iter_loops,
)
from gotestlooplint.symbols import Symbol, SymbolTable
from gotestlooplint.utils.logging import logger

RULE_NAME = "gotestlooplint"

METADATA = RuleMetadata(
    name=RULE_NAME,
    category="testing",
    doc=(
        "gotestlooplint looks for loop var capture in parallel go tests "
        "or for loop var capture in regular Ginkgo tests"
    ),
    target_extensions=[".go"],
    exclude_patterns=[
        "vendor/",
        "testdata/",
    ],
)


@dataclass(frozen=True)
class LoopCapturePatterns:
    """Call shapes that defer a closure past the current loop iteration."""

    # Receiver type of t.Run / t.Parallel
    TEST_CONTEXT_TYPE = "*testing.T"

    SUBTEST_METHOD = "Run"
    PARALLEL_METHOD = "Parallel"
    SPEC_FUNCTION = "It"

    GINKGO_PACKAGE_PATHS = frozenset([
        "github.com/onsi/ginkgo",
        "github.com/onsi/ginkgo/v2",
    ])

    # Run(name, fn) and It(description, fn)
    CLOSURE_ARGUMENT_INDEX = 1


class TemplateKind(Enum):
    """Which message a diagnostic uses."""

    PARALLEL_TEST = "parallel-test"
    GINKGO_IT = "ginkgo-it"


MESSAGE_TEMPLATES = {
    TemplateKind.PARALLEL_TEST: (
        "loop variable `{name}` used directly inside parallel test closure. "
        "This could lead to tests not running as expected. "
        "Try aliasing `{name}` to a variable outside the closure"
    ),
    TemplateKind.GINKGO_IT: (
        "loop variable `{name}` used directly inside ginkgo It closure. "
        "This could lead to tests not running as expected. "
        "Try aliasing `{name}` to a variable outside the closure"
    ),
}


def format_message(kind: TemplateKind, name: str) -> str:
    return MESSAGE_TEMPLATES[kind].format(name=name)


# ----------------------------------------------------------------------------
# Tree walking with early termination
# ----------------------------------------------------------------------------


class Walk(Enum):
    """What a visitor tells the walker to do next."""

    CONTINUE = "continue"
    SKIP_CHILDREN = "skip"
    STOP = "stop"


def walk(root: Any, visit: Callable[[Any], Walk]) -> None:
    """Depth-first pre-order walk of root and its descendants."""
    stack = [root]
    while stack:
        node = stack.pop()
        action = visit(node)
        if action is Walk.STOP:
            return
        if action is Walk.CONTINUE:
            stack.extend(reversed(node.children))


def find_first(root: Any, predicate: Callable[[Any], bool]) -> Any | None:
    """First node in pre-order for which predicate holds."""
    found = []

    def visit(node: Any) -> Walk:
        if predicate(node):
            found.append(node)
            return Walk.STOP
        return Walk.CONTINUE

    walk(root, visit)
    return found[0] if found else None


# ----------------------------------------------------------------------------
# Callee references
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class BareName:
    """`It(...)`: callee is a plain identifier."""

    ident: Any


@dataclass(frozen=True)
class QualifiedName:
    """`x.Run(...)` / `ginkgo.It(...)`: callee is a selector."""

    operand: Any
    field: Any


CalleeRef = BareName | QualifiedName


def callee_ref(call: Any) -> CalleeRef | None:
    function = call.child_by_field_name("function")
    if function is None:
        return None
    if function.type == "identifier":
        return BareName(function)
    if function.type == "selector_expression":
        operand = function.child_by_field_name("operand")
        field_node = function.child_by_field_name("field")
        if operand is not None and field_node is not None:
            return QualifiedName(operand, field_node)
    return None


def call_arguments(call: Any) -> list[Any]:
    """Positional arguments of a call expression."""
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [arg for arg in arguments.named_children if arg.type != "comment"]


# ----------------------------------------------------------------------------
# Call pattern matchers
# ----------------------------------------------------------------------------


def find_testing_t_call(
    root: Any,
    symbols: SymbolTable,
    method_name: str,
    receiver: Symbol | None = None,
    no_arguments: bool = False,
) -> Any | None:
    """First `t.<method_name>(...)` call under root where t is a *testing.T.

    With receiver given, t must resolve to exactly that Symbol.
    """

    def matches(node: Any) -> bool:
        if node.type != "call_expression":
            return False
        if no_arguments and call_arguments(node):
            return False
        ref = callee_ref(node)
        if not isinstance(ref, QualifiedName) or ref.operand.type != "identifier":
            return False
        if get_node_text(ref.field) != method_name:
            return False

        target = symbols.object_of(ref.operand)
        if target is None:
            return False
        if receiver is not None:
            return target is receiver
        return target.type_text == LoopCapturePatterns.TEST_CONTEXT_TYPE

    return find_first(root, matches)


def is_ginkgo_identifier(symbols: SymbolTable, ident: Any) -> bool:
    return symbols.package_path_of(ident) in LoopCapturePatterns.GINKGO_PACKAGE_PATHS


def find_ginkgo_it_call(root: Any, symbols: SymbolTable) -> Any | None:
    """First Ginkgo `It(...)` or `ginkgo.It(...)` call under root."""

    def matches(node: Any) -> bool:
        if node.type != "call_expression":
            return False
        ref = callee_ref(node)
        if isinstance(ref, QualifiedName):
            # ginkgo imported regularly: `ginkgo.It`
            ident = ref.field
        elif isinstance(ref, BareName):
            # ginkgo dot-imported: `It`
            ident = ref.ident
        else:
            return False
        return get_node_text(ident) == LoopCapturePatterns.SPEC_FUNCTION and is_ginkgo_identifier(symbols, ident)

    return find_first(root, matches)


def get_closure_argument(call: Any) -> Any | None:
    """The function literal passed as the closure argument, if there is one."""
    arguments = call_arguments(call)
    if len(arguments) <= LoopCapturePatterns.CLOSURE_ARGUMENT_INDEX:
        return None

    closure = arguments[LoopCapturePatterns.CLOSURE_ARGUMENT_INDEX]
    if closure.type != "func_literal":
        return None
    return closure


# ----------------------------------------------------------------------------
# Parallel marker
# ----------------------------------------------------------------------------


def closure_test_context(closure: Any, symbols: SymbolTable) -> Symbol | None:
    """The closure's own *testing.T parameter."""
    parameters = closure.child_by_field_name("parameters")
    for param in find_children_by_type(parameters, "parameter_declaration"):
        for name_node in param.children_by_field_name("name"):
            if symbols.type_of(name_node) == LoopCapturePatterns.TEST_CONTEXT_TYPE:
                return symbols.object_of(name_node)
    return None


def find_parallel_marker(closure: Any, symbols: SymbolTable) -> int | None:
    """Start offset of `t.Parallel()` on the closure's own t, or None."""
    test_context = closure_test_context(closure, symbols)
    if test_context is None:
        return None

    body = closure.child_by_field_name("body")
    if body is None:
        return None

    marker = find_testing_t_call(
        body,
        symbols,
        LoopCapturePatterns.PARALLEL_METHOD,
        receiver=test_context,
        no_arguments=True,
    )
    return marker.start_byte if marker is not None else None


# ----------------------------------------------------------------------------
# Analyzer
# ----------------------------------------------------------------------------


class LoopCaptureAnalyzer:
    """Checks every loop of one file for both capture patterns.

    Each loop is checked inside its own failure boundary: an unexpected tree
    shape turns into one diagnostic at the loop instead of ending the scan.
    """

    def __init__(self, context: RuleContext):
        self.context = context
        self.symbols = context.symbols
        self.findings: list[Diagnostic] = []

    def analyze(self) -> list[Diagnostic]:
        """Main analysis entry point."""
        for loop_node in iter_loops(self.context.parsed.root):
            if self.context.require_test_function and enclosing_test_function(loop_node) is None:
                continue

            try:
                self._check_loop(loop_node)
            except Exception as e:
                logger.opt(exception=True).warning(
                    f"{self.context.file_path}:{loop_node.start_point[0] + 1}: loop check failed: {e}"
                )
                self._report_fault(loop_node, e)

        return self.findings

    def _check_loop(self, loop_node: Any) -> None:
        loop = as_loop_node(loop_node)
        loop_vars = get_loop_variables(loop, self.symbols)
        if not loop_vars:
            return

        self._check_parallel_subtest(loop, loop_vars)
        self._check_ginkgo_it(loop, loop_vars)

    def _check_parallel_subtest(self, loop, loop_vars: frozenset[Symbol]) -> None:
        run_call = find_testing_t_call(get_loop_body(loop), self.symbols, LoopCapturePatterns.SUBTEST_METHOD)
        if run_call is None:
            return

        closure = get_closure_argument(run_call)
        if closure is None:
            return

        parallel_pos = find_parallel_marker(closure, self.symbols)
        if parallel_pos is None:
            # Without t.Parallel() the subtest finishes before the next iteration
            return

        logger.debug(
            f"{self.context.file_path}:{run_call.start_point[0] + 1}: parallel subtest, "
            f"checking {sorted(v.name for v in loop_vars)}"
        )
        self._check_captures(closure, loop_vars, TemplateKind.PARALLEL_TEST, after=parallel_pos)

    def _check_ginkgo_it(self, loop, loop_vars: frozenset[Symbol]) -> None:
        it_call = find_ginkgo_it_call(get_loop_body(loop), self.symbols)
        if it_call is None:
            return

        closure = get_closure_argument(it_call)
        if closure is None:
            return

        logger.debug(
            f"{self.context.file_path}:{it_call.start_point[0] + 1}: ginkgo It, "
            f"checking {sorted(v.name for v in loop_vars)}"
        )
        self._check_captures(closure, loop_vars, TemplateKind.GINKGO_IT)

    def _check_captures(
        self,
        closure: Any,
        loop_vars: frozenset[Symbol],
        kind: TemplateKind,
        after: int | None = None,
    ) -> None:
        """Report every identifier in the closure body that resolves to a loop variable.

        Nodes starting at or before `after` are skipped (their children are
        still visited): that code runs before the closure goes asynchronous.
        """
        body = closure.child_by_field_name("body")
        if body is None:
            return

        def visit(node: Any) -> Walk:
            if after is not None and node.start_byte <= after:
                return Walk.CONTINUE
            if node.type not in ("identifier", "field_identifier"):
                return Walk.CONTINUE
            if self.symbols.object_of(node) in loop_vars:
                self._report(node, kind)
                return Walk.SKIP_CHILDREN
            return Walk.CONTINUE

        walk(body, visit)

    def _report(self, ident: Any, kind: TemplateKind) -> None:
        name = get_node_text(ident)
        line, column, offset = node_position(ident)
        self.findings.append(
            Diagnostic(
                rule_name=RULE_NAME,
                message=format_message(kind, name),
                file_path=self.context.file_path,
                line=line,
                column=column,
                offset=offset,
                severity=Severity.HIGH,
                confidence=Confidence.HIGH,
                snippet=self.context.get_snippet(line),
                variable_name=name,
                template_kind=kind.value,
            )
        )

    def _report_fault(self, loop_node: Any, error: Exception) -> None:
        line, column, offset = node_position(loop_node)
        self.findings.append(
            Diagnostic(
                rule_name=RULE_NAME,
                message=f"internal error while checking loop: {type(error).__name__}: {error}",
                file_path=self.context.file_path,
                line=line,
                column=column,
                offset=offset,
                severity=Severity.LOW,
                confidence=Confidence.LOW,
                snippet=self.context.get_snippet(line),
            )
        )


def analyze(context: RuleContext) -> list[Diagnostic]:
    """Detect loop variables captured by parallel subtests and Ginkgo It closures."""
    analyzer = LoopCaptureAnalyzer(context)
    return analyzer.analyze()
