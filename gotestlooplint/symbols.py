"""Identifier resolution for Go packages.

Maps every identifier node of a parsed package to the Symbol of the
declaration it refers to, following Go's block scoping:

    universe -> package -> file (imports) -> function -> nested blocks

Symbols compare by identity. Two variables named ``v`` in different scopes
are different Symbols, which is what lets the loop checks tell a shadowing
``v := v`` apart from the loop's own ``v``.

No type checking is done. Declared types are only recorded as normalised
text (``*testing.T``) where the declaration spells them out, or where a short
variable declaration copies them from an identifier or a composite literal.
"""

from dataclasses import dataclass, field
from typing import Any

from gotestlooplint.ast_extractors.go_impl import (
    extract_go_imports,
    extract_go_top_level_names,
    find_children_by_type,
    get_node_text,
    has_token,
    iter_value_specs,
    node_position,
)
from gotestlooplint.ast_parser import ParsedGoFile
from gotestlooplint.utils.logging import logger

# Predeclared identifiers of the universe block
UNIVERSE_NAMES = frozenset([
    "nil", "true", "false", "iota",
    "make", "new", "len", "cap", "append", "copy", "delete", "clear",
    "close", "panic", "recover", "print", "println", "min", "max",
    "complex", "real", "imag",
    "any", "comparable", "error", "string", "bool", "byte", "rune", "uintptr",
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64",
    "float32", "float64", "complex64", "complex128",
])

# Exported names of packages commonly dot-imported side by side, used to
# decide which dot import a bare name comes from.
KNOWN_DOT_IMPORT_EXPORTS: dict[str, frozenset[str]] = {
    "github.com/onsi/ginkgo": frozenset([
        "It", "FIt", "PIt", "XIt", "Specify", "FSpecify", "PSpecify", "XSpecify",
        "Describe", "FDescribe", "PDescribe", "XDescribe",
        "Context", "FContext", "PContext", "XContext", "When",
        "BeforeEach", "AfterEach", "JustBeforeEach", "JustAfterEach",
        "BeforeSuite", "AfterSuite", "SynchronizedBeforeSuite", "SynchronizedAfterSuite",
        "By", "Fail", "RunSpecs", "GinkgoT", "GinkgoWriter", "GinkgoRecover",
        "GinkgoParallelNode", "Measure",
    ]),
    "github.com/onsi/ginkgo/v2": frozenset([
        "It", "FIt", "PIt", "XIt", "Specify", "FSpecify", "PSpecify", "XSpecify",
        "Describe", "FDescribe", "PDescribe", "XDescribe",
        "Context", "FContext", "PContext", "XContext", "When", "FWhen", "PWhen", "XWhen",
        "BeforeEach", "AfterEach", "JustBeforeEach", "JustAfterEach",
        "BeforeAll", "AfterAll", "BeforeSuite", "AfterSuite",
        "SynchronizedBeforeSuite", "SynchronizedAfterSuite",
        "DescribeTable", "FDescribeTable", "PDescribeTable", "XDescribeTable",
        "Entry", "FEntry", "PEntry", "XEntry",
        "By", "Fail", "Skip", "RunSpecs", "GinkgoT", "GinkgoWriter", "GinkgoRecover",
        "GinkgoHelper", "GinkgoParallelProcess", "DeferCleanup", "Label", "Ordered",
        "Serial", "Focus", "Pending", "Offset", "FlakeAttempts", "MustPassRepeatedly",
    ]),
    "github.com/onsi/gomega": frozenset([
        "Expect", "ExpectWithOffset", "Eventually", "EventuallyWithOffset",
        "Consistently", "ConsistentlyWithOffset", "Ω", "RegisterFailHandler",
        "RegisterTestingT", "NewWithT", "NewGomegaWithT",
        "Equal", "BeEquivalentTo", "BeIdenticalTo", "BeNil", "BeTrue", "BeFalse",
        "BeZero", "BeEmpty", "HaveLen", "HaveCap", "HaveOccurred", "Succeed",
        "MatchError", "ContainElement", "ContainElements", "ConsistOf", "HaveKey",
        "HaveKeyWithValue", "HaveField", "ContainSubstring", "HavePrefix", "HaveSuffix",
        "MatchRegexp", "MatchJSON", "MatchYAML", "BeNumerically", "BeTemporally",
        "BeAssignableToTypeOf", "Panic", "PanicWith", "BeClosed", "Receive",
        "BeSent", "BeElementOf", "BeKeyOf", "And", "Or", "Not", "SatisfyAll",
        "SatisfyAny", "WithTransform", "Satisfy", "HaveEach", "HaveValue",
        "HaveExactElements", "HaveHTTPStatus", "HaveHTTPBody", "HaveHTTPHeaderWithValue",
        "BeAnExistingFile", "BeARegularFile", "BeADirectory", "InOrder", "Default",
    ]),
}

# Node types whose names are introduced by the enclosing handler, or that
# only ever contain type syntax.
_TYPE_ONLY_NODES = frozenset([
    "function_type",
    "interface_type",
    "type_parameter_list",
])

# Composite literal types whose keys are values (indices, map keys), not field names
_INDEXED_LITERAL_TYPES = frozenset([
    "map_type",
    "slice_type",
    "array_type",
    "implicit_length_array_type",
])


@dataclass(eq=False)
class Symbol:
    """The declaration an identifier resolves to.

    Compared and hashed by identity, never by name.
    """

    name: str
    kind: str  # var | const | func | type | param | package | member | field | builtin
    file_path: str | None = None
    line: int = 0
    column: int = 0
    type_text: str | None = None
    package_path: str | None = None

    def __repr__(self) -> str:
        where = f"{self.file_path}:{self.line}:{self.column}" if self.file_path else "<universe>"
        return f"Symbol({self.kind} {self.name!r} @ {where})"


class Scope:
    """One Go block."""

    def __init__(self, parent: "Scope | None" = None, kind: str = "block"):
        self.parent = parent
        self.kind = kind
        self.names: dict[str, Symbol] = {}

    def lookup(self, name: str) -> Symbol | None:
        scope = self
        while scope is not None:
            symbol = scope.names.get(name)
            if symbol is not None:
                return symbol
            scope = scope.parent
        return None


@dataclass
class SymbolTable:
    """Resolution results for one file: identifier node -> Symbol."""

    file_path: str
    imports: list[dict] = field(default_factory=list)
    _objects: dict[tuple[int, int], Symbol] = field(default_factory=dict)

    def bind(self, node: Any, symbol: Symbol) -> None:
        self._objects[(node.start_byte, node.end_byte)] = symbol

    def object_of(self, node: Any) -> Symbol | None:
        """Symbol an identifier (or selector field) resolves to, if any."""
        if node is None:
            return None
        return self._objects.get((node.start_byte, node.end_byte))

    def type_of(self, node: Any) -> str | None:
        symbol = self.object_of(node)
        return symbol.type_text if symbol is not None else None

    def package_path_of(self, node: Any) -> str | None:
        symbol = self.object_of(node)
        return symbol.package_path if symbol is not None else None

    def __len__(self) -> int:
        return len(self._objects)


class PackageResolver:
    """Resolves identifiers for all files of one Go package."""

    def __init__(self, files: list[ParsedGoFile]):
        self.files = files
        self.universe = Scope(kind="universe")
        self.package_scope = Scope(self.universe, kind="package")
        self._members: dict[tuple[str, str], Symbol] = {}
        self._fields: dict[tuple[Symbol, str], Symbol] = {}

        # Per-file state, set while a file is walked
        self._table: SymbolTable | None = None
        self._file_scope: Scope | None = None
        self._import_paths: dict[str, str] = {}
        self._dot_imports: list[str] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self) -> dict[str, SymbolTable]:
        """Resolve every file; returns file_path -> SymbolTable."""
        self._declare_package_block()

        tables = {}
        for parsed in self.files:
            tables[parsed.file_path] = self._resolve_file(parsed)
            logger.debug(f"Resolved {len(tables[parsed.file_path])} identifiers in {parsed.file_path}")
        return tables

    # ------------------------------------------------------------------
    # Package and file blocks
    # ------------------------------------------------------------------

    def _declare_package_block(self) -> None:
        for parsed in self.files:
            imports = extract_go_imports(parsed.tree, parsed.file_path)
            import_paths = {i["name"]: i["path"] for i in imports if not i["is_dot_import"]}

            for decl in extract_go_top_level_names(parsed.tree):
                line, column, _ = node_position(decl["node"])
                type_text = None
                if decl["kind"] in ("var", "const"):
                    type_node = decl["spec"].child_by_field_name("type")
                    type_text = self._type_text(type_node, import_paths) if type_node else None

                symbol = Symbol(
                    name=decl["name"],
                    kind=decl["kind"],
                    file_path=parsed.file_path,
                    line=line,
                    column=column,
                    type_text=type_text,
                )
                # First declaration wins; duplicates are a compile error anyway
                self.package_scope.names.setdefault(decl["name"], symbol)

    def _resolve_file(self, parsed: ParsedGoFile) -> SymbolTable:
        imports = extract_go_imports(parsed.tree, parsed.file_path)

        self._table = SymbolTable(file_path=parsed.file_path, imports=imports)
        self._import_paths = {}
        self._dot_imports = []

        # Go puts imports in the file block, inside the package block. Names
        # are looked up innermost-out, so imports sit between locals and
        # package declarations.
        file_scope = Scope(self.package_scope, kind="file")
        for imp in imports:
            if imp["is_blank_import"]:
                continue
            if imp["is_dot_import"]:
                self._dot_imports.append(imp["path"])
                continue
            self._import_paths[imp["name"]] = imp["path"]
            file_scope.names[imp["name"]] = Symbol(
                name=imp["name"],
                kind="package",
                file_path=parsed.file_path,
                line=imp["line"],
                package_path=imp["path"],
            )
        self._file_scope = file_scope

        for child in parsed.root.children:
            self._visit_top_level(child, file_scope)

        table = self._table
        self._table = None
        self._file_scope = None
        return table

    def _visit_top_level(self, node: Any, scope: Scope) -> None:
        if node.type in ("package_clause", "import_declaration", "comment"):
            return

        if node.type == "function_declaration":
            name_node = node.child_by_field_name("name")
            symbol = self.package_scope.names.get(get_node_text(name_node))
            if name_node is not None and symbol is not None:
                self._table.bind(name_node, symbol)
            self._visit_function(node, scope)
            return

        if node.type == "method_declaration":
            self._visit_function(node, scope)
            return

        if node.type in ("var_declaration", "const_declaration"):
            for spec in iter_value_specs(node):
                value = spec.child_by_field_name("value")
                if value is not None:
                    self._visit(value, scope)
                for name_node in spec.children_by_field_name("name"):
                    symbol = self.package_scope.names.get(get_node_text(name_node))
                    if symbol is not None:
                        self._table.bind(name_node, symbol)
            return

        self._visit(node, scope)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _declare(self, name_node: Any, scope: Scope, kind: str, type_text: str | None = None) -> Symbol | None:
        name = get_node_text(name_node)
        if not name or name == "_":
            return None

        line, column, _ = node_position(name_node)
        symbol = Symbol(
            name=name,
            kind=kind,
            file_path=self._table.file_path,
            line=line,
            column=column,
            type_text=type_text,
        )
        scope.names[name] = symbol
        self._table.bind(name_node, symbol)
        return symbol

    def _declare_short(self, left: Any, right: Any, scope: Scope, kind: str = "var") -> None:
        """Declare the left side of `a, b := x, y` after resolving the right side."""
        if right is not None:
            self._visit(right, scope)

        if left is None:
            return

        lhs = left.named_children if left.type == "expression_list" else [left]
        rhs = []
        if right is not None:
            rhs = right.named_children if right.type == "expression_list" else [right]
        inferred = rhs if len(rhs) == len(lhs) else [None] * len(lhs)

        for name_node, value_node in zip(lhs, inferred):
            if name_node.type != "identifier":
                self._visit(name_node, scope)
                continue

            name = get_node_text(name_node)
            existing = scope.names.get(name)
            if existing is not None:
                # `x, err := ...` reuses an `err` already declared in this block
                self._table.bind(name_node, existing)
                continue

            self._declare(name_node, scope, kind, self._infer_type(value_node))

    def _declare_parameters(self, param_list: Any, scope: Scope) -> None:
        if param_list is None:
            return

        for param in param_list.named_children:
            if param.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            type_node = param.child_by_field_name("type")
            type_text = self._type_text(type_node, self._import_paths) if type_node is not None else None
            if param.type == "variadic_parameter_declaration" and type_text:
                type_text = "..." + type_text
            for name_node in param.children_by_field_name("name"):
                self._declare(name_node, scope, "param", type_text)

    def _declare_type_parameters(self, type_params: Any, scope: Scope) -> None:
        if type_params is None:
            return

        for decl in find_children_by_type(type_params, "type_parameter_declaration"):
            for name_node in decl.children_by_field_name("name"):
                self._declare(name_node, scope, "type")

    # ------------------------------------------------------------------
    # Tree walk
    # ------------------------------------------------------------------

    def _visit_function(self, node: Any, scope: Scope) -> None:
        """Function declaration, method declaration or function literal."""
        func_scope = Scope(scope, kind="function")

        self._declare_parameters(node.child_by_field_name("receiver"), func_scope)
        self._declare_type_parameters(node.child_by_field_name("type_parameters"), func_scope)
        self._declare_parameters(node.child_by_field_name("parameters"), func_scope)

        result = node.child_by_field_name("result")
        if result is not None and result.type == "parameter_list":
            self._declare_parameters(result, func_scope)

        body = node.child_by_field_name("body")
        if body is not None:
            # Parameters and the outermost body statements share one block
            self._visit_children(body, func_scope)

    def _visit_children(self, node: Any, scope: Scope) -> None:
        for child in node.children:
            self._visit(child, scope)

    def _visit(self, node: Any, scope: Scope) -> None:
        node_type = node.type

        if node_type == "identifier":
            self._resolve_reference(node, scope)

        elif node_type in _TYPE_ONLY_NODES:
            return

        elif node_type == "func_literal":
            self._visit_function(node, scope)

        elif node_type == "block":
            self._visit_children(node, Scope(scope))

        elif node_type == "short_var_declaration":
            self._declare_short(node.child_by_field_name("left"), node.child_by_field_name("right"), scope)

        elif node_type in ("var_declaration", "const_declaration"):
            kind = "var" if node_type == "var_declaration" else "const"
            for spec in iter_value_specs(node):
                self._visit_value_spec(spec, scope, kind)

        elif node_type == "type_declaration":
            for spec in node.named_children:
                if spec.type in ("type_spec", "type_alias"):
                    name_node = spec.child_by_field_name("name")
                    if name_node is not None and get_node_text(name_node) != "_":
                        scope.names[get_node_text(name_node)] = Symbol(
                            name=get_node_text(name_node),
                            kind="type",
                            file_path=self._table.file_path,
                            line=node_position(name_node)[0],
                            column=node_position(name_node)[1],
                        )

        elif node_type == "for_statement":
            self._visit_for(node, Scope(scope))

        elif node_type in ("if_statement", "expression_switch_statement", "select_statement"):
            self._visit_children(node, Scope(scope))

        elif node_type == "type_switch_statement":
            self._visit_type_switch(node, Scope(scope))

        elif node_type in ("expression_case", "default_case", "type_case", "communication_case"):
            self._visit_children(node, Scope(scope))

        elif node_type == "receive_statement":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            if left is not None and has_token(node, ":="):
                self._declare_short(left, right, scope)
            else:
                self._visit_children(node, scope)

        elif node_type == "selector_expression":
            self._visit_selector(node, scope)

        elif node_type == "keyed_element":
            self._visit_keyed_element(node, scope)

        else:
            self._visit_children(node, scope)

    def _visit_value_spec(self, spec: Any, scope: Scope, kind: str) -> None:
        value = spec.child_by_field_name("value")
        if value is not None:
            self._visit(value, scope)

        type_node = spec.child_by_field_name("type")
        type_text = self._type_text(type_node, self._import_paths) if type_node is not None else None

        names = spec.children_by_field_name("name")
        values = value.named_children if value is not None and value.type == "expression_list" else []
        for index, name_node in enumerate(names):
            if type_text is None and len(values) == len(names):
                self._declare(name_node, scope, kind, self._infer_type(values[index]))
            else:
                self._declare(name_node, scope, kind, type_text)

    def _visit_for(self, node: Any, scope: Scope) -> None:
        for child in node.children:
            if child.type == "for_clause":
                # initializer, condition, update in source order
                self._visit_children(child, scope)
            elif child.type == "range_clause":
                left = child.child_by_field_name("left")
                right = child.child_by_field_name("right")
                if right is not None:
                    self._visit(right, scope)
                if left is None:
                    continue
                if has_token(child, ":="):
                    for name_node in left.named_children if left.type == "expression_list" else [left]:
                        if name_node.type == "identifier":
                            self._declare(name_node, scope, "var")
                        else:
                            self._visit(name_node, scope)
                else:
                    self._visit(left, scope)
            else:
                self._visit(child, scope)

    def _visit_type_switch(self, node: Any, scope: Scope) -> None:
        initializer = node.child_by_field_name("initializer")
        if initializer is not None:
            self._visit(initializer, scope)

        value = node.child_by_field_name("value")
        if value is not None:
            self._visit(value, scope)

        # `switch x := v.(type)` - one x for all clauses
        for alias in node.children_by_field_name("alias"):
            for name_node in alias.named_children if alias.type == "expression_list" else [alias]:
                if name_node.type == "identifier":
                    self._declare(name_node, scope, "var")

        for child in node.named_children:
            if child.type in ("type_case", "default_case"):
                self._visit(child, scope)

    def _visit_selector(self, node: Any, scope: Scope) -> None:
        operand = node.child_by_field_name("operand")
        field_node = node.child_by_field_name("field")
        if operand is None:
            return

        self._visit(operand, scope)

        if operand.type != "identifier" or field_node is None:
            return

        target = self._table.object_of(operand)
        if target is None:
            return
        if target.kind == "package":
            # pkg.Name: a member Symbol of the imported package
            self._table.bind(field_node, self._member(target.package_path, get_node_text(field_node)))
        elif target.kind in ("var", "param"):
            # v.f: one Symbol per (variable, field name), types are not known
            self._table.bind(field_node, self._field(target, get_node_text(field_node)))

    def _visit_keyed_element(self, node: Any, scope: Scope) -> None:
        literal_type = self._literal_type(node.parent)
        field_keys = literal_type is None or literal_type.type not in _INDEXED_LITERAL_TYPES

        elements = node.named_children
        for index, element in enumerate(elements):
            if index == 0 and field_keys and self._is_field_key(element):
                # T{name: x}: `name` is a struct field, not a variable
                continue
            self._visit(element, scope)

    def _literal_type(self, literal_value: Any) -> Any | None:
        """Type node of the composite literal a literal_value belongs to.

        Elided inner literals (`[]T{{...}}`, `map[K]V{k: {...}}`) take the
        element type of the enclosing literal. None when unknown.
        """
        if literal_value is None or literal_value.type != "literal_value":
            return None

        parent = literal_value.parent
        if parent is None:
            return None
        if parent.type == "composite_literal":
            return parent.child_by_field_name("type")

        # Older grammars nest literal_value directly, newer wrap it in literal_element
        element = literal_value
        holder = parent
        if holder.type == "literal_element":
            element = holder
            holder = holder.parent

        is_key = False
        if holder is not None and holder.type == "keyed_element":
            first = holder.named_children[0] if holder.named_children else None
            is_key = first is not None and first.start_byte == element.start_byte
            holder = holder.parent

        outer = self._literal_type(holder)
        if outer is None:
            return None
        if outer.type == "map_type":
            element_type = outer.child_by_field_name("key" if is_key else "value")
        elif outer.type in _INDEXED_LITERAL_TYPES:
            element_type = outer.child_by_field_name("element")
        else:
            return None

        # []*T{{...}} elides &T{...}
        if element_type is not None and element_type.type == "pointer_type" and element_type.named_children:
            element_type = element_type.named_children[0]
        return element_type

    @staticmethod
    def _is_field_key(element: Any) -> bool:
        if element.type in ("identifier", "field_identifier"):
            return True
        if element.type == "literal_element":
            inner = element.named_children
            return len(inner) == 1 and inner[0].type in ("identifier", "field_identifier")
        return False

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _resolve_reference(self, node: Any, scope: Scope) -> None:
        name = get_node_text(node)
        if not name or name == "_":
            return

        symbol = scope.lookup(name)
        if symbol is None and name in UNIVERSE_NAMES:
            symbol = self.universe.names.setdefault(name, Symbol(name=name, kind="builtin"))
        if symbol is None:
            symbol = self._resolve_dot_import(name)

        if symbol is not None:
            self._table.bind(node, symbol)

    def _resolve_dot_import(self, name: str) -> Symbol | None:
        if not self._dot_imports or not name[:1].isupper():
            return None

        known = [p for p in self._dot_imports if name in KNOWN_DOT_IMPORT_EXPORTS.get(p, ())]
        if len(known) == 1:
            return self._member(known[0], name)

        unknown = [p for p in self._dot_imports if p not in KNOWN_DOT_IMPORT_EXPORTS]
        candidates = known or unknown
        if len(candidates) == 1:
            return self._member(candidates[0], name)

        logger.debug(f"Cannot tell which dot import declares {name!r}: {candidates}")
        return None

    def _member(self, package_path: str, name: str) -> Symbol:
        key = (package_path, name)
        symbol = self._members.get(key)
        if symbol is None:
            symbol = Symbol(name=name, kind="member", package_path=package_path)
            self._members[key] = symbol
        return symbol

    def _field(self, owner: Symbol, name: str) -> Symbol:
        key = (owner, name)
        symbol = self._fields.get(key)
        if symbol is None:
            symbol = Symbol(name=name, kind="field", file_path=owner.file_path, line=owner.line, column=owner.column)
            self._fields[key] = symbol
        return symbol

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def _type_text(self, node: Any, import_paths: dict[str, str]) -> str | None:
        """Normalise a type expression: `*tt.T` with `tt "testing"` -> `*testing.T`."""
        if node is None:
            return None

        if node.type == "pointer_type":
            inner = node.named_children[0] if node.named_children else None
            inner_text = self._type_text(inner, import_paths)
            return "*" + inner_text if inner_text else None

        if node.type == "qualified_type":
            package = get_node_text(node.child_by_field_name("package"))
            name = get_node_text(node.child_by_field_name("name"))
            return f"{import_paths.get(package, package)}.{name}"

        if node.type == "parenthesized_type" and node.named_children:
            return self._type_text(node.named_children[0], import_paths)

        return get_node_text(node)

    def _infer_type(self, value: Any) -> str | None:
        """Type of a short variable declaration's right-hand side, when obvious."""
        if value is None:
            return None

        if value.type == "identifier":
            symbol = self._table.object_of(value)
            return symbol.type_text if symbol is not None else None

        if value.type == "composite_literal":
            return self._type_text(value.child_by_field_name("type"), self._import_paths)

        if value.type == "unary_expression" and has_token(value, "&"):
            operand = value.child_by_field_name("operand")
            if operand is not None and operand.type == "composite_literal":
                inner = self._type_text(operand.child_by_field_name("type"), self._import_paths)
                return "*" + inner if inner else None

        if value.type == "parenthesized_expression" and value.named_children:
            return self._infer_type(value.named_children[0])

        return None


def resolve_package(files: list[ParsedGoFile]) -> dict[str, SymbolTable]:
    """Resolve all identifiers of one package; returns file_path -> SymbolTable."""
    return PackageResolver(files).resolve()
