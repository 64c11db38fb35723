"""Split webpack and browserify bundles into their modules.

Bundles are recognized structurally on the parsed tree; nothing is executed.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Union

from rich.console import Console

from unmangle.core.exceptions import ParseError, UnrecognizedBundleFormat
from unmangle.core.generator import generate_code
from unmangle.core.nodes import (
    FUNCTION_TYPES,
    contains,
    expression_statement,
    is_identifier,
    is_literal,
    is_member_of,
    is_numeric_literal,
    iter_subtree,
    program,
)
from unmangle.core.parser import parse_javascript
from unmangle.core.scope import ScopeTree

console = Console()

ModuleId = Union[int, str]

WEBPACK_PARAMS = ("module", "exports", "require")
BROWSERIFY_PARAMS = ("require", "module", "exports")

# /*!*** ./src/index.js ***!*/ banners emitted by webpack in development mode
_BANNER_RE = re.compile(r"!\*{3}\s+(\S.*?)\s+\*{3}!")
_PATH_LIKE_RE = re.compile(r"/|\.[A-Za-z]\w*$")
_KEPT_EXTENSIONS = (".js", ".mjs", ".cjs", ".jsx")


@dataclass
class Module:
    """One module extracted from a bundle."""
    id: ModuleId
    code: str
    is_entry: bool = False
    path: Optional[str] = None  # as written in the bundle, before normalization


@dataclass
class UnpackResult:
    """Modules of a bundle and the file names recovered for them."""
    modules: list[Module] = field(default_factory=list)
    module_id_mapping: dict[ModuleId, str] = field(default_factory=dict)
    bundler: str = ""

    def filename_for(self, module: Module) -> str:
        return self.module_id_mapping.get(module.id) or f"module-{module.id}.js"


def normalize_filename(name: str) -> str:
    """Turn a module path into a relative output file name.

    ``./src/a`` becomes ``src/a.js``; parent segments are dropped so the
    result always stays below the output directory.
    """
    segments = [segment for segment in name.replace("\\", "/").split("/") if segment not in ("", ".", "..")]
    filename = "/".join(segments) or "index"
    if not filename.endswith(_KEPT_EXTENSIONS):
        filename += ".js"
    return filename


def _module_id(key: dict) -> Optional[ModuleId]:
    if is_numeric_literal(key):
        value = key["value"]
        return int(value) if float(value).is_integer() else str(value)
    if is_literal(key) and isinstance(key.get("value"), str):
        return key["value"]
    if is_identifier(key):
        return key["name"]
    return None


def _banner_path(node: dict) -> Optional[str]:
    for comment in node.get("leadingComments") or []:
        match = _BANNER_RE.search(comment.get("value", ""))
        if match:
            return match.group(1)
    return None


def _is_function(node: Optional[dict]) -> bool:
    return node is not None and node["type"] in FUNCTION_TYPES


def _candidate_calls(body: list) -> list[dict]:
    """Top-level calls, looking through ``!``, ``void``, assignments and sequences."""
    calls = []
    for statement in body:
        if statement["type"] != "ExpressionStatement":
            continue
        pending = [statement["expression"]]
        while pending:
            expression = pending.pop(0)
            node_type = expression["type"]
            if node_type == "UnaryExpression" and expression["operator"] in ("!", "void"):
                pending.append(expression["argument"])
            elif node_type == "AssignmentExpression":
                pending.append(expression["right"])
            elif node_type == "SequenceExpression":
                pending.extend(expression["expressions"])
            elif node_type == "CallExpression":
                calls.append(expression)
    return calls


class _Registry:
    """Collects modules and file names while one bundle is read."""

    def __init__(self, source: str, param_names: tuple[str, ...]):
        self.source = source
        self.param_names = param_names
        self.modules: list[Module] = []
        self.mapping: dict[ModuleId, str] = {}
        self.paths: dict[ModuleId, str] = {}
        self.entries: set[ModuleId] = set()

    def add_mapping(self, module_id: ModuleId, path: Optional[str]) -> None:
        if path and module_id not in self.mapping:
            self.mapping[module_id] = normalize_filename(path)
            self.paths[module_id] = path

    def add_factory(self, module_id: ModuleId, factory: dict) -> None:
        self.modules.append(Module(id=module_id, code=self.factory_code(factory)))

    def factory_code(self, factory: dict) -> str:
        """Rename the factory parameters and print its body as a program."""
        wrapper = program([expression_statement(factory)])
        scope = ScopeTree(wrapper)
        function_scope = scope.scope_for(factory, 0)
        for param, wanted in zip(factory["params"], self.param_names):
            if not is_identifier(param) or param["name"] == wanted:
                continue
            binding = scope.binding_of(param)
            if binding is not None:
                scope.rename_binding(binding, scope.generate_name(wanted, function_scope))

        body = factory["body"]
        if body["type"] == "BlockStatement":
            module_program = program(body["body"])
        else:
            module_program = program([expression_statement(body)])
        return generate_code(module_program, self.source)

    def result(self, bundler: str) -> UnpackResult:
        for module in self.modules:
            module.is_entry = module.id in self.entries
            module.path = self.paths.get(module.id)
        known = {module.id for module in self.modules}
        mapping = {module_id: path for module_id, path in self.mapping.items() if module_id in known}
        return UnpackResult(modules=self.modules, module_id_mapping=mapping, bundler=bundler)


# ---------------------------------------------------------------------------
# webpack 4
# ---------------------------------------------------------------------------

def _webpack4_runtime(call: dict) -> Optional[tuple[dict, str]]:
    """``(bootstrap function, require name)`` when ``call`` is a webpack 4 bootstrap."""
    callee = call["callee"]
    if callee["type"] != "FunctionExpression" or len(callee["params"]) != 1 or not call["arguments"]:
        return None
    if call["arguments"][0]["type"] not in ("ArrayExpression", "ObjectExpression"):
        return None
    modules_param = callee["params"][0]
    if not is_identifier(modules_param):
        return None
    body = callee["body"]["body"]
    functions = {statement["id"]["name"] for statement in body if statement["type"] == "FunctionDeclaration" and statement.get("id")}
    for node in iter_subtree(callee["body"]):
        if node["type"] != "AssignmentExpression":
            continue
        left = node["left"]
        if is_member_of(left, property_name="m") and left["object"]["name"] in functions \
                and is_identifier(node["right"], modules_param["name"]):
            return callee, left["object"]["name"]
    return None


def _webpack4_entries(bootstrap: dict, require_name: str) -> set[ModuleId]:
    entries: set[ModuleId] = set()
    fallback: set[ModuleId] = set()
    require_function = next(
        statement for statement in bootstrap["body"]["body"]
        if statement["type"] == "FunctionDeclaration" and is_identifier(statement.get("id"), require_name)
    )
    inside_require = {id(node) for node in iter_subtree(require_function)}
    for node in iter_subtree(bootstrap["body"]):
        if node["type"] != "CallExpression" or id(node) in inside_require:
            continue
        if not is_identifier(node["callee"], require_name) or len(node["arguments"]) != 1:
            continue
        argument = node["arguments"][0]
        if argument["type"] == "AssignmentExpression" and is_member_of(argument["left"], require_name, "s"):
            module_id = _module_id(argument["right"]) if is_literal(argument["right"]) else None
            if module_id is not None:
                entries.add(module_id)
        elif is_literal(argument):
            module_id = _module_id(argument)
            if module_id is not None:
                fallback.add(module_id)
    return entries or fallback


def _read_object_registry(registry: _Registry, modules: dict) -> None:
    for prop in modules["properties"]:
        if prop["type"] != "Property" or prop.get("computed"):
            continue
        module_id = _module_id(prop["key"])
        if module_id is None or not _is_function(prop["value"]):
            continue
        if isinstance(module_id, str) and _PATH_LIKE_RE.search(module_id):
            registry.add_mapping(module_id, module_id)
        registry.add_mapping(module_id, _banner_path(prop) or _banner_path(prop["value"]))
        registry.add_factory(module_id, prop["value"])


def _unpack_webpack4(source: str, call: dict) -> Optional[UnpackResult]:
    runtime = _webpack4_runtime(call)
    if runtime is None:
        return None
    bootstrap, require_name = runtime
    registry = _Registry(source, WEBPACK_PARAMS)
    modules = call["arguments"][0]
    if modules["type"] == "ArrayExpression":
        for index, element in enumerate(modules["elements"]):
            if not _is_function(element):
                continue
            registry.add_mapping(index, _banner_path(element))
            registry.add_factory(index, element)
    else:
        _read_object_registry(registry, modules)
    registry.entries = _webpack4_entries(bootstrap, require_name)
    return registry.result("webpack4")


# ---------------------------------------------------------------------------
# webpack 5
# ---------------------------------------------------------------------------

def _webpack5_runtime(call: dict) -> Optional[tuple[list, dict, dict]]:
    """``(runtime body, registry declarator, require function)`` for a webpack 5 IIFE."""
    callee = call["callee"]
    if callee["type"] not in ("ArrowFunctionExpression", "FunctionExpression") or callee["params"] or call["arguments"]:
        return None
    if callee["body"]["type"] != "BlockStatement":
        return None
    body = callee["body"]["body"]

    registries = {}
    for statement in body:
        if statement["type"] != "VariableDeclaration":
            continue
        for declarator in statement["declarations"]:
            init = declarator.get("init")
            if is_identifier(declarator["id"]) and init is not None and init["type"] == "ObjectExpression" \
                    and init["properties"] and all(_is_function(prop.get("value")) for prop in init["properties"]):
                registries[declarator["id"]["name"]] = declarator

    for statement in body:
        if statement["type"] != "FunctionDeclaration" or len(statement["params"]) != 1:
            continue
        param = statement["params"][0]
        if not is_identifier(param):
            continue
        for name, declarator in registries.items():
            if contains(
                statement["body"],
                lambda node: node["type"] == "MemberExpression" and node.get("computed")
                and is_identifier(node["object"], name) and is_identifier(node["property"], param["name"]),
            ):
                return body, declarator, statement
    return None


def _assigns_to(node: dict, require_name: str) -> bool:
    return contains(
        node,
        lambda child: child["type"] == "AssignmentExpression" and child["left"]["type"] == "MemberExpression"
        and _member_root(child["left"]) == require_name,
    )


def _member_root(member: dict) -> Optional[str]:
    while member["type"] == "MemberExpression":
        member = member["object"]
    return member["name"] if is_identifier(member) else None


def _iife_function(statement: dict) -> Optional[dict]:
    """Function of ``(() => {...})()`` / ``!function(){...}()`` statements."""
    if statement["type"] != "ExpressionStatement":
        return None
    expression = statement["expression"]
    if expression["type"] == "UnaryExpression" and expression["operator"] in ("!", "void"):
        expression = expression["argument"]
    if expression["type"] != "CallExpression" or expression["arguments"]:
        return None
    callee = expression["callee"]
    if callee["type"] in ("ArrowFunctionExpression", "FunctionExpression") and not callee["params"] \
            and callee["body"]["type"] == "BlockStatement":
        return callee
    return None


def _is_runtime_statement(statement: dict, registry_declarator: dict, require_function: dict) -> bool:
    require_name = require_function["id"]["name"]
    node_type = statement["type"]
    if statement is require_function:
        return True
    if node_type == "VariableDeclaration":
        for declarator in statement["declarations"]:
            if declarator is registry_declarator:
                return True
            init = declarator.get("init")
            name = declarator["id"].get("name")
            # the module cache
            if init is not None and init["type"] == "ObjectExpression" and not init["properties"] \
                    and contains(require_function, lambda node: is_identifier(node, name)):
                return True
        return False
    if node_type == "ExpressionStatement":
        expression = statement["expression"]
        if is_literal(expression):
            return True
        if expression["type"] == "AssignmentExpression" and expression["left"]["type"] == "MemberExpression" \
                and _member_root(expression["left"]) == require_name:
            return True
        iife = _iife_function(statement)
        if iife is not None and _assigns_to(iife["body"], require_name):
            return True
    return False


def _entry_call_id(statement: dict, require_name: str) -> Optional[ModuleId]:
    """Module id of a bare ``req(id)`` / ``var x = req(id)`` statement."""
    call = None
    if statement["type"] == "ExpressionStatement":
        call = statement["expression"]
    elif statement["type"] == "VariableDeclaration" and len(statement["declarations"]) == 1:
        call = statement["declarations"][0].get("init")
    if call is None or call["type"] != "CallExpression" or not is_identifier(call["callee"], require_name):
        return None
    if len(call["arguments"]) != 1 or not is_literal(call["arguments"][0]):
        return None
    return _module_id(call["arguments"][0])


def _unpack_webpack5(source: str, call: dict) -> Optional[UnpackResult]:
    runtime = _webpack5_runtime(call)
    if runtime is None:
        return None
    body, registry_declarator, require_function = runtime
    require_name = require_function["id"]["name"]

    registry = _Registry(source, WEBPACK_PARAMS)
    _read_object_registry(registry, registry_declarator["init"])

    remaining = [
        statement for statement in body
        if not _is_runtime_statement(statement, registry_declarator, require_function)
    ]
    entry_ids = [_entry_call_id(statement, require_name) for statement in remaining]
    if remaining and all(module_id is not None for module_id in entry_ids):
        registry.entries = set(entry_ids)
    elif remaining:
        registry.modules.append(_inline_entry(source, remaining, require_name))
        registry.entries = {"entry"}
    return registry.result("webpack5")


def _inline_entry(source: str, statements: list, require_name: str) -> Module:
    """The entry code webpack 5 inlines at the end of its runtime."""
    flattened = []
    for statement in statements:
        iife = _iife_function(statement)
        if iife is not None:
            flattened.extend(iife["body"]["body"])
        else:
            flattened.append(statement)
    entry_program = program(flattened)
    scope = ScopeTree(entry_program)
    if require_name != "require":
        scope.rename_global(require_name, scope.generate_name("require", 0))
    return Module(id="entry", code=generate_code(entry_program, source), is_entry=True)


# ---------------------------------------------------------------------------
# browserify
# ---------------------------------------------------------------------------

def _unpack_browserify(source: str, call: dict) -> Optional[UnpackResult]:
    arguments = call["arguments"]
    if len(arguments) != 3:
        return None
    modules, cache, entries = arguments
    if modules["type"] != "ObjectExpression" or cache["type"] != "ObjectExpression" \
            or entries["type"] != "ArrayExpression":
        return None
    if not all(element is not None and is_literal(element) for element in entries["elements"]):
        return None

    definitions = []
    for prop in modules["properties"]:
        value = prop.get("value")
        if prop["type"] != "Property" or value is None or value["type"] != "ArrayExpression":
            return None
        elements = value["elements"]
        if len(elements) != 2 or not _is_function(elements[0]) or elements[1] is None \
                or elements[1]["type"] != "ObjectExpression":
            return None
        module_id = _module_id(prop["key"])
        if module_id is None:
            return None
        definitions.append((module_id, elements[0], elements[1]))
    if not definitions:
        return None

    registry = _Registry(source, BROWSERIFY_PARAMS)
    for module_id, factory, dependencies in definitions:
        registry.add_factory(module_id, factory)
        for dependency in dependencies["properties"]:
            if dependency["type"] != "Property" or not is_literal(dependency.get("value")):
                continue
            target = _module_id(dependency["value"])
            name = _module_id(dependency["key"])
            if target is not None and isinstance(name, str):
                registry.add_mapping(target, name)
    registry.entries = {_module_id(element) for element in entries["elements"]}
    return registry.result("browserify")


def unpack(source: str) -> UnpackResult:
    """Extract the modules of a webpack 4/5 or browserify bundle.

    Args:
        source: Bundle source code

    Returns:
        UnpackResult with one Module per registry entry

    Raises:
        UnrecognizedBundleFormat: If the input is not a recognized bundle
    """
    try:
        tree = parse_javascript(source)
    except ParseError as e:
        raise UnrecognizedBundleFormat(f"Failed to parse bundle: {e}", details=str(e)) from e

    for call in _candidate_calls(tree.program["body"]):
        for reader in (_unpack_browserify, _unpack_webpack4, _unpack_webpack5):
            result = reader(source, call)
            if result is not None:
                console.print(
                    f"[dim]Detected {result.bundler} bundle with {len(result.modules)} modules[/dim]"
                )
                return result

    raise UnrecognizedBundleFormat("No webpack or browserify runtime found")
