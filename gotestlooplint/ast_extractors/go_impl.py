"""Go AST helpers and extraction using tree-sitter."""

import re
from typing import Any

# `/vN` major-version suffix of a module path (github.com/onsi/ginkgo/v2)
_MAJOR_VERSION_SUFFIX = re.compile(r"^v[0-9]+$")
_GOPKG_VERSION_SUFFIX = re.compile(r"\.v[0-9]+$")


def get_node_text(node: Any) -> str:
    """Extract text from a tree-sitter node."""
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="ignore")


def find_child_by_type(node: Any, child_type: str) -> Any | None:
    """Find first child of given type."""
    if node is None:
        return None
    for child in node.children:
        if child.type == child_type:
            return child
    return None


def find_children_by_type(node: Any, child_type: str) -> list[Any]:
    """Find all children of given type."""
    if node is None:
        return []
    return [child for child in node.children if child.type == child_type]


def has_token(node: Any, token: str) -> bool:
    """Check whether an anonymous token (":=", "&", ...) is a direct child."""
    if node is None:
        return False
    return any(not child.is_named and child.type == token for child in node.children)


def node_position(node: Any) -> tuple[int, int, int]:
    """Return (line, column, offset); line and column are 1-based like go/token."""
    return node.start_point[0] + 1, node.start_point[1] + 1, node.start_byte


def default_package_name(import_path: str) -> str:
    """Name an import binds when it has no alias.

    This is the last path element, skipping a major-version suffix, which is
    the convention every well-known module follows.
    """
    parts = [p for p in import_path.split("/") if p]
    if not parts:
        return import_path

    last = parts[-1]
    if len(parts) > 1 and _MAJOR_VERSION_SUFFIX.match(last):
        last = parts[-2]

    # gopkg.in/yaml.v3 -> yaml
    last = _GOPKG_VERSION_SUFFIX.sub("", last)
    # github.com/mattn/go-sqlite3 -> sqlite3
    if last.startswith("go-"):
        last = last[3:]
    return last.replace("-", "_").replace(".", "_")


def extract_go_package(tree: Any, file_path: str) -> dict | None:
    """Extract package declaration from a Go file."""
    root = tree.root_node
    pkg_clause = find_child_by_type(root, "package_clause")
    if not pkg_clause:
        return None

    pkg_id = find_child_by_type(pkg_clause, "package_identifier")
    if not pkg_id:
        return None

    return {
        "file_path": file_path,
        "line": pkg_clause.start_point[0] + 1,
        "name": get_node_text(pkg_id),
    }


def extract_go_imports(tree: Any, file_path: str) -> list[dict]:
    """Extract import declarations from a Go file."""
    root = tree.root_node
    imports = []

    for import_decl in find_children_by_type(root, "import_declaration"):
        # Single import: import "fmt"
        single_spec = find_child_by_type(import_decl, "import_spec")
        if single_spec:
            imports.append(_parse_import_spec(single_spec, file_path))
            continue

        # Grouped imports: import ( "fmt" \n "os" )
        spec_list = find_child_by_type(import_decl, "import_spec_list")
        if spec_list:
            for spec in find_children_by_type(spec_list, "import_spec"):
                imports.append(_parse_import_spec(spec, file_path))

    return [i for i in imports if i is not None]


def _parse_import_spec(spec: Any, file_path: str) -> dict | None:
    """Parse a single import spec."""
    path_node = spec.child_by_field_name("path")
    if path_node is None:
        path_node = find_child_by_type(spec, "interpreted_string_literal") or find_child_by_type(
            spec, "raw_string_literal"
        )
    if not path_node:
        return None

    path = get_node_text(path_node).strip('"`')

    name_node = spec.child_by_field_name("name")
    name_type = name_node.type if name_node is not None else None

    is_dot_import = name_type == "dot"
    is_blank_import = name_type == "blank_identifier"
    alias = (
        get_node_text(name_node)
        if name_type in ("package_identifier", "identifier")
        else None
    )

    return {
        "file_path": file_path,
        "line": spec.start_point[0] + 1,
        "path": path,
        "alias": alias,
        "name": alias or default_package_name(path),
        "is_dot_import": is_dot_import,
        "is_blank_import": is_blank_import,
    }


def extract_go_top_level_names(tree: Any) -> list[dict]:
    """Extract package-block declarations (funcs, vars, consts, types).

    Methods are skipped: they live in their receiver type's method set,
    not in the package block.
    """
    root = tree.root_node
    names = []

    for child in root.children:
        if child.type == "function_declaration":
            name_node = child.child_by_field_name("name")
            if name_node is not None:
                names.append({"node": name_node, "name": get_node_text(name_node), "kind": "func", "spec": child})

        elif child.type in ("var_declaration", "const_declaration"):
            kind = "var" if child.type == "var_declaration" else "const"
            for spec in iter_value_specs(child):
                for name_node in spec.children_by_field_name("name"):
                    names.append({"node": name_node, "name": get_node_text(name_node), "kind": kind, "spec": spec})

        elif child.type == "type_declaration":
            for spec in child.named_children:
                if spec.type not in ("type_spec", "type_alias"):
                    continue
                name_node = spec.child_by_field_name("name")
                if name_node is not None:
                    names.append({"node": name_node, "name": get_node_text(name_node), "kind": "type", "spec": spec})

    return [n for n in names if n["name"] != "_" and n["name"] != "init"]


def iter_value_specs(decl: Any):
    """Yield var_spec/const_spec nodes of a var or const declaration.

    Newer grammars wrap grouped specs in a var_spec_list.
    """
    for child in decl.named_children:
        if child.type in ("var_spec", "const_spec"):
            yield child
        elif child.type in ("var_spec_list", "const_spec_list"):
            for spec in child.named_children:
                if spec.type in ("var_spec", "const_spec"):
                    yield spec
