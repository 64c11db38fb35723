"""Code generation: print ESTree programs (JSX included) back to source."""

import json
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from unmangle.core.exceptions import UnsupportedConstruct
from unmangle.core.nodes import is_identifier, is_identifier_name
from unmangle.core.parser import ProgramTree

console = Console()

INDENT = "  "

BINARY_PRECEDENCE = {
    "??": 5,
    "||": 6,
    "&&": 7,
    "|": 8,
    "^": 9,
    "&": 10,
    "==": 11, "!=": 11, "===": 11, "!==": 11,
    "<": 12, ">": 12, "<=": 12, ">=": 12, "instanceof": 12, "in": 12,
    "<<": 13, ">>": 13, ">>>": 13,
    "+": 14, "-": 14,
    "*": 15, "/": 15, "%": 15,
    "**": 16,
}

PRECEDENCE = {
    "SequenceExpression": 1,
    "YieldExpression": 2,
    "AssignmentExpression": 3,
    "ArrowFunctionExpression": 3,
    "ConditionalExpression": 4,
    "UnaryExpression": 17,
    "AwaitExpression": 17,
    "UpdateExpression": 18,
    "CallExpression": 19,
    "MemberExpression": 19,
    "NewExpression": 19,
    "TaggedTemplateExpression": 19,
}

WORD_OPERATORS = frozenset({"typeof", "void", "delete"})


def _precedence(node: dict) -> int:
    node_type = node["type"]
    if node_type in ("BinaryExpression", "LogicalExpression"):
        return BINARY_PRECEDENCE[node["operator"]]
    return PRECEDENCE.get(node_type, 20)


def _leftmost(node: dict) -> dict:
    """The node whose text starts an expression when printed without parens."""
    while True:
        node_type = node["type"]
        if node_type in ("CallExpression", "TaggedTemplateExpression"):
            child = node["callee"] if node_type == "CallExpression" else node["tag"]
        elif node_type == "MemberExpression":
            child = node["object"]
        elif node_type in ("BinaryExpression", "LogicalExpression", "AssignmentExpression"):
            child = node["left"]
        elif node_type == "ConditionalExpression":
            child = node["test"]
        elif node_type == "SequenceExpression":
            child = node["expressions"][0]
        elif node_type == "UpdateExpression" and not node["prefix"]:
            child = node["argument"]
        else:
            return node
        if _precedence(child) < _precedence(node) or (
            node_type == "CallExpression" and child["type"] == "SequenceExpression"
        ):
            # the child gets parenthesized, so it does not lead
            return node
        node = child


def _starts_ambiguously(node: dict) -> bool:
    return _leftmost(node)["type"] in (
        "ObjectExpression", "ObjectPattern", "FunctionExpression", "ClassExpression",
    )


class CodePrinter:
    """Prints ESTree nodes as JavaScript source.

    Formatting is fixed: two-space indentation, semicolons, one object
    property per line. Blank lines between statements are kept when the
    original source had them.
    """

    def __init__(self, source: Optional[str] = None):
        self.source = source
        self.indent = 0
        # set while printing a for(;;) initializer, where a bare `in` would start a for-in
        self.no_in = False

    # -- helpers --------------------------------------------------------

    def _pad(self, extra: int = 0) -> str:
        return INDENT * (self.indent + extra)

    def _leading_comments(self, node: dict, statement: bool) -> str:
        parts = []
        for comment in node.get("leadingComments") or []:
            if comment["type"] == "Line":
                parts.append(f"//{comment['value']}\n" + self._pad())
            elif statement:
                parts.append(f"/*{comment['value']}*/\n" + self._pad())
            else:
                parts.append(f"/*{comment['value']}*/ ")
        return "".join(parts)

    def _trailing_comments(self, node: dict, statement: bool) -> str:
        parts = []
        for comment in node.get("trailingComments") or []:
            if comment["type"] == "Line":
                parts.append(f" //{comment['value']}")
                if not statement:
                    parts.append("\n" + self._pad())
            else:
                parts.append(f" /*{comment['value']}*/")
        return "".join(parts)

    def _blank_line_between(self, previous: dict, current: dict) -> bool:
        if self.source is None:
            return False
        previous_range = previous.get("range")
        current_range = current.get("range")
        if not previous_range or not current_range:
            return False
        start = current_range[0]
        for comment in current.get("leadingComments") or []:
            if comment.get("range"):
                start = min(start, comment["range"][0])
        end = previous_range[1]
        for comment in previous.get("trailingComments") or []:
            if comment.get("range") and comment["range"][1] <= start:
                end = max(end, comment["range"][1])
        if end > start:
            return False
        return self.source.count("\n", end, start) >= 2

    # -- entry points ---------------------------------------------------

    def print(self, node: dict) -> str:
        node_type = node["type"]
        if node_type == "Program":
            return self.print_program(node)
        if node_type.endswith("Statement") or node_type.endswith("Declaration"):
            return self.statement(node)
        return self.expression(node)

    def print_program(self, node: dict) -> str:
        body = self.statements(node["body"])
        trailing = "".join(
            (f"//{c['value']}" if c["type"] == "Line" else f"/*{c['value']}*/") + "\n"
            for c in node.get("trailingComments") or []
        )
        text = body + ("\n" if body else "") + trailing
        return text

    def statements(self, body: list) -> str:
        lines = []
        previous = None
        for statement in body:
            if previous is not None and self._blank_line_between(previous, statement):
                lines.append("")
            lines.append(self._pad() + self.statement(statement))
            previous = statement
        return "\n".join(lines)

    def block(self, node: dict) -> str:
        if not node["body"]:
            return "{}"
        self.indent += 1
        inner = self.statements(node["body"])
        self.indent -= 1
        return "{\n" + inner + "\n" + self._pad() + "}"

    def nested_statement(self, node: dict) -> str:
        """Body of if/for/while: blocks stay on the header line."""
        if node["type"] == "BlockStatement":
            return " " + self.statement(node)
        if node["type"] == "EmptyStatement":
            return ";"
        self.indent += 1
        text = "\n" + self._pad() + self.statement(node)
        self.indent -= 1
        return text

    # -- statements -----------------------------------------------------

    def statement(self, node: dict) -> str:
        method = getattr(self, f"_stmt_{node['type']}", None)
        if method is None:
            raise UnsupportedConstruct(f"Cannot print statement {node['type']}")
        text = method(node)
        return self._leading_comments(node, True) + text + self._trailing_comments(node, True)

    def _stmt_ExpressionStatement(self, node: dict) -> str:
        expression = node["expression"]
        if node.get("directive") is not None and expression["type"] == "Literal":
            return self.literal(expression) + ";"
        text = self.expression(expression)
        if _starts_ambiguously(expression) or text.startswith("let ["):
            text = f"({text})"
        return text + ";"

    def _stmt_Directive(self, node: dict) -> str:
        return self._stmt_ExpressionStatement(node)

    def _stmt_BlockStatement(self, node: dict) -> str:
        return self.block(node)

    def _stmt_StaticBlock(self, node: dict) -> str:
        return "static " + self.block(node)

    def _stmt_EmptyStatement(self, node: dict) -> str:
        return ";"

    def _stmt_DebuggerStatement(self, node: dict) -> str:
        return "debugger;"

    def _stmt_VariableDeclaration(self, node: dict, semicolon: bool = True) -> str:
        declarators = []
        for declarator in node["declarations"]:
            text = self.pattern(declarator["id"])
            if declarator.get("init") is not None:
                text += " = " + self.expression(declarator["init"], 3)
            declarators.append(self._leading_comments(declarator, False) + text)
        return f"{node['kind']} " + ", ".join(declarators) + (";" if semicolon else "")

    def _stmt_FunctionDeclaration(self, node: dict) -> str:
        return self.function(node)

    def _stmt_ClassDeclaration(self, node: dict) -> str:
        return self.class_(node)

    def _stmt_ReturnStatement(self, node: dict) -> str:
        argument = node.get("argument")
        if argument is None:
            return "return;"
        if argument["type"] in ("JSXElement", "JSXFragment"):
            self.indent += 1
            text = self.expression(argument)
            self.indent -= 1
            if "\n" in text:
                return "return (\n" + self._pad(1) + text + "\n" + self._pad() + ");"
        return "return " + self.expression(argument) + ";"

    def _stmt_ThrowStatement(self, node: dict) -> str:
        return "throw " + self.expression(node["argument"]) + ";"

    def _stmt_BreakStatement(self, node: dict) -> str:
        label = node.get("label")
        return "break" + (f" {label['name']}" if label else "") + ";"

    def _stmt_ContinueStatement(self, node: dict) -> str:
        label = node.get("label")
        return "continue" + (f" {label['name']}" if label else "") + ";"

    def _stmt_LabeledStatement(self, node: dict) -> str:
        return f"{node['label']['name']}: " + self.statement(node["body"])

    def _stmt_IfStatement(self, node: dict) -> str:
        text = "if (" + self.expression(node["test"]) + ")" + self.nested_statement(node["consequent"])
        alternate = node.get("alternate")
        if alternate is not None:
            if node["consequent"]["type"] == "BlockStatement":
                text += " else"
            else:
                text += "\n" + self._pad() + "else"
            if alternate["type"] == "IfStatement":
                text += " " + self.statement(alternate)
            else:
                text += self.nested_statement(alternate)
        return text

    def _for_init(self, node: Optional[dict], no_in: bool = False) -> str:
        if node is None:
            return ""
        saved, self.no_in = self.no_in, no_in
        try:
            if node["type"] == "VariableDeclaration":
                return self._stmt_VariableDeclaration(node, semicolon=False)
            return self.expression(node)
        finally:
            self.no_in = saved

    def _stmt_ForStatement(self, node: dict) -> str:
        init = self._for_init(node.get("init"), no_in=True)
        test = self.expression(node["test"]) if node.get("test") is not None else ""
        update = self.expression(node["update"]) if node.get("update") is not None else ""
        header = f"for ({init};{' ' + test if test else ''};{' ' + update if update else ''})"
        return header + self.nested_statement(node["body"])

    def _stmt_ForInStatement(self, node: dict) -> str:
        return (
            "for (" + self._for_init(node["left"]) + " in " + self.expression(node["right"]) + ")"
            + self.nested_statement(node["body"])
        )

    def _stmt_ForOfStatement(self, node: dict) -> str:
        keyword = "for await" if node.get("await") else "for"
        return (
            f"{keyword} (" + self._for_init(node["left"]) + " of " + self.expression(node["right"], 3) + ")"
            + self.nested_statement(node["body"])
        )

    def _stmt_WhileStatement(self, node: dict) -> str:
        return "while (" + self.expression(node["test"]) + ")" + self.nested_statement(node["body"])

    def _stmt_DoWhileStatement(self, node: dict) -> str:
        body = self.nested_statement(node["body"])
        separator = " " if node["body"]["type"] == "BlockStatement" else "\n" + self._pad()
        return "do" + body + separator + "while (" + self.expression(node["test"]) + ");"

    def _stmt_WithStatement(self, node: dict) -> str:
        return "with (" + self.expression(node["object"]) + ")" + self.nested_statement(node["body"])

    def _stmt_TryStatement(self, node: dict) -> str:
        text = "try " + self.block(node["block"])
        handler = node.get("handler")
        if handler is not None:
            param = handler.get("param")
            text += " catch " + (f"({self.pattern(param)}) " if param is not None else "") + self.block(handler["body"])
        finalizer = node.get("finalizer")
        if finalizer is not None:
            text += " finally " + self.block(finalizer)
        return text

    def _stmt_SwitchStatement(self, node: dict) -> str:
        lines = ["switch (" + self.expression(node["discriminant"]) + ") {"]
        self.indent += 1
        for case in node["cases"]:
            head = "default:" if case.get("test") is None else "case " + self.expression(case["test"]) + ":"
            lines.append(self._pad() + self._leading_comments(case, True) + head)
            self.indent += 1
            if case["consequent"]:
                lines.append(self.statements(case["consequent"]))
            self.indent -= 1
        self.indent -= 1
        lines.append(self._pad() + "}")
        return "\n".join(lines)

    def _module_source(self, node: dict) -> str:
        return self.literal(node["source"])

    def _stmt_ImportDeclaration(self, node: dict) -> str:
        specifiers = node.get("specifiers") or []
        if not specifiers:
            return "import " + self._module_source(node) + ";"
        parts = []
        named = []
        for specifier in specifiers:
            spec_type = specifier["type"]
            if spec_type == "ImportDefaultSpecifier":
                parts.append(specifier["local"]["name"])
            elif spec_type == "ImportNamespaceSpecifier":
                parts.append("* as " + specifier["local"]["name"])
            else:
                imported = specifier["imported"]["name"]
                local = specifier["local"]["name"]
                named.append(imported if imported == local else f"{imported} as {local}")
        if named:
            parts.append("{ " + ", ".join(named) + " }")
        return "import " + ", ".join(parts) + " from " + self._module_source(node) + ";"

    def _export_specifiers(self, specifiers: list) -> str:
        names = []
        for specifier in specifiers:
            local = specifier["local"]["name"]
            exported = specifier["exported"]["name"]
            names.append(local if local == exported else f"{local} as {exported}")
        return "{ " + ", ".join(names) + " }" if names else "{}"

    def _stmt_ExportNamedDeclaration(self, node: dict) -> str:
        declaration = node.get("declaration")
        if declaration is not None:
            return "export " + self.statement(declaration)
        text = "export " + self._export_specifiers(node.get("specifiers") or [])
        if node.get("source") is not None:
            text += " from " + self._module_source(node)
        return text + ";"

    def _stmt_ExportDefaultDeclaration(self, node: dict) -> str:
        declaration = node["declaration"]
        if declaration["type"] in ("FunctionDeclaration", "ClassDeclaration"):
            return "export default " + self.statement(declaration)
        text = self.expression(declaration, 3)
        if _starts_ambiguously(declaration) and declaration["type"] not in ("FunctionExpression", "ClassExpression"):
            text = f"({text})"
        return "export default " + text + ";"

    def _stmt_ExportAllDeclaration(self, node: dict) -> str:
        exported = node.get("exported")
        alias = f" as {exported['name']}" if exported else ""
        return f"export *{alias} from " + self._module_source(node) + ";"

    # -- functions and classes --------------------------------------------

    def params(self, params: list) -> str:
        return "(" + ", ".join(self.pattern(param) for param in params) + ")"

    def function(self, node: dict) -> str:
        prefix = "async " if node.get("async") else ""
        prefix += "function"
        if node.get("generator"):
            prefix += "*"
        name = f" {node['id']['name']}" if node.get("id") else ""
        if not name and node.get("generator"):
            prefix += " "
        return prefix + name + self.params(node["params"]) + " " + self.block(node["body"])

    def arrow(self, node: dict) -> str:
        prefix = "async " if node.get("async") else ""
        body = node["body"]
        if body["type"] == "BlockStatement":
            body_text = self.block(body)
        else:
            body_text = self.expression(body, 3)
            if _starts_ambiguously(body) and _leftmost(body)["type"] == "ObjectExpression":
                body_text = f"({body_text})"
        return prefix + self.params(node["params"]) + " => " + body_text

    def class_(self, node: dict) -> str:
        text = "class"
        if node.get("id"):
            text += " " + node["id"]["name"]
        if node.get("superClass") is not None:
            text += " extends " + self.expression(node["superClass"], 19)
        body = node["body"]["body"]
        if not body:
            return text + " {}"
        self.indent += 1
        members = [self._pad() + self.class_member(member) for member in body]
        self.indent -= 1
        return text + " {\n" + "\n".join(members) + "\n" + self._pad() + "}"

    def property_key(self, node: dict) -> str:
        key = node["key"]
        if node.get("computed"):
            return "[" + self.expression(key, 3) + "]"
        if key["type"] == "Identifier":
            return key["name"]
        if key["type"] == "PrivateIdentifier":
            return "#" + key["name"]
        return self.expression(key)

    def method(self, node: dict, kind: str, is_static: bool = False) -> str:
        value = node["value"]
        prefix = "static " if is_static else ""
        if kind in ("get", "set"):
            prefix += kind + " "
        if value.get("async"):
            prefix += "async "
        if value.get("generator"):
            prefix += "*"
        return prefix + self.property_key(node) + self.params(value["params"]) + " " + self.block(value["body"])

    def class_member(self, member: dict) -> str:
        member_type = member["type"]
        comments = self._leading_comments(member, True)
        if member_type == "MethodDefinition":
            kind = member.get("kind", "method")
            return comments + self.method(member, kind if kind != "constructor" else "method", member.get("static", False))
        if member_type in ("PropertyDefinition", "ClassProperty"):
            text = ("static " if member.get("static") else "") + self.property_key(member)
            if member.get("value") is not None:
                text += " = " + self.expression(member["value"], 3)
            return comments + text + ";"
        if member_type == "StaticBlock":
            return comments + "static " + self.block(member)
        raise UnsupportedConstruct(f"Cannot print class member {member_type}")

    # -- expressions ------------------------------------------------------

    def expression(self, node: dict, min_precedence: int = 0) -> str:
        method = getattr(self, f"_expr_{node['type']}", None)
        if method is None:
            raise UnsupportedConstruct(f"Cannot print expression {node['type']}")
        if self.no_in and node["type"] == "BinaryExpression" and node["operator"] == "in":
            self.no_in = False
            try:
                text = "(" + method(node) + ")"
            finally:
                self.no_in = True
        else:
            text = method(node)
            if _precedence(node) < min_precedence:
                text = f"({text})"
        return self._leading_comments(node, False) + text + self._trailing_comments(node, False)

    def literal(self, node: dict) -> str:
        raw = node.get("raw")
        if raw is not None:
            return raw
        if "regex" in node and node["regex"]:
            return f"/{node['regex']['pattern']}/{node['regex'].get('flags', '')}"
        value = node.get("value")
        if value is None:
            return "null"
        if value is True:
            return "true"
        if value is False:
            return "false"
        if isinstance(value, str):
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, float):
            if value != value:
                return "NaN"
            if value in (float("inf"), float("-inf")):
                return "Infinity" if value > 0 else "-Infinity"
            return repr(value)
        return str(value)

    def _expr_Literal(self, node: dict) -> str:
        return self.literal(node)

    def _expr_Identifier(self, node: dict) -> str:
        return node["name"]

    def _expr_ThisExpression(self, node: dict) -> str:
        return "this"

    def _expr_Super(self, node: dict) -> str:
        return "super"

    def _expr_Import(self, node: dict) -> str:
        return "import"

    def _expr_MetaProperty(self, node: dict) -> str:
        return f"{node['meta']['name']}.{node['property']['name']}"

    def _expr_TemplateLiteral(self, node: dict) -> str:
        parts = ["`"]
        expressions = node["expressions"]
        for index, quasi in enumerate(node["quasis"]):
            parts.append(quasi["value"]["raw"])
            if index < len(expressions):
                parts.append("${" + self.expression(expressions[index]) + "}")
        parts.append("`")
        return "".join(parts)

    def _expr_TaggedTemplateExpression(self, node: dict) -> str:
        return self.expression(node["tag"], 19) + self._expr_TemplateLiteral(node["quasi"])

    def _expr_ArrayExpression(self, node: dict) -> str:
        elements = node["elements"]
        parts = ["" if element is None else self.expression(element, 3) for element in elements]
        text = ", ".join(parts)
        if elements and elements[-1] is None:
            text += ","
        return "[" + text + "]"

    def object_properties(self, properties: list, pattern: bool) -> str:
        if not properties:
            return "{}"
        self.indent += 1
        lines = []
        last = len(properties) - 1
        for position, prop in enumerate(properties):
            text = self.pattern_property(prop) if pattern else self.object_member(prop)
            # the separator goes before trailing comments so a line comment cannot swallow it
            separator = "," if position < last else ""
            trailing = self._trailing_comments(prop, True)
            lines.append(self._pad() + self._leading_comments(prop, True) + text + separator + trailing)
        self.indent -= 1
        return "{\n" + "\n".join(lines) + "\n" + self._pad() + "}"

    def object_member(self, prop: dict) -> str:
        if prop["type"] in ("SpreadElement", "RestElement"):
            return "..." + self.expression(prop["argument"], 3)
        kind = prop.get("kind", "init")
        if kind in ("get", "set") or prop.get("method"):
            return self.method(prop, kind)
        key = prop["key"]
        value = prop["value"]
        if prop.get("shorthand") and not prop.get("computed") and is_identifier(key) and is_identifier(value, key["name"]):
            return key["name"]
        return self.property_key(prop) + ": " + self.expression(value, 3)

    def _expr_ObjectExpression(self, node: dict) -> str:
        return self.object_properties(node["properties"], pattern=False)

    def _expr_FunctionExpression(self, node: dict) -> str:
        return self.function(node)

    def _expr_ArrowFunctionExpression(self, node: dict) -> str:
        return self.arrow(node)

    def _expr_ClassExpression(self, node: dict) -> str:
        return self.class_(node)

    def _expr_SequenceExpression(self, node: dict) -> str:
        return ", ".join(self.expression(item, 3) for item in node["expressions"])

    def _expr_UnaryExpression(self, node: dict) -> str:
        operator = node["operator"]
        argument = self.expression(node["argument"], 17)
        if operator in WORD_OPERATORS:
            return f"{operator} {argument}"
        if operator in ("+", "-") and argument.startswith(operator):
            return f"{operator} {argument}"
        return operator + argument

    def _expr_UpdateExpression(self, node: dict) -> str:
        argument = self.expression(node["argument"], 18)
        if node["prefix"]:
            return node["operator"] + argument
        return argument + node["operator"]

    def _binary_operand(self, parent: dict, child: dict, min_precedence: int) -> str:
        operator = parent["operator"]
        mixes_nullish = (
            child["type"] == "LogicalExpression"
            and (operator == "??") != (child["operator"] == "??")
            and {operator, child["operator"]} & {"??"}
        )
        if mixes_nullish:
            return "(" + self.expression(child) + ")"
        return self.expression(child, min_precedence)

    def _expr_BinaryExpression(self, node: dict) -> str:
        precedence = BINARY_PRECEDENCE[node["operator"]]
        if node["operator"] == "**":
            left_min = 18 if node["left"]["type"] in ("UnaryExpression", "AwaitExpression") else precedence + 1
            left = self._binary_operand(node, node["left"], left_min)
            right = self._binary_operand(node, node["right"], precedence)
        else:
            left = self._binary_operand(node, node["left"], precedence)
            right = self._binary_operand(node, node["right"], precedence + 1)
        return f"{left} {node['operator']} {right}"

    def _expr_LogicalExpression(self, node: dict) -> str:
        return self._expr_BinaryExpression(node)

    def _expr_AssignmentExpression(self, node: dict) -> str:
        return self.pattern(node["left"]) + f" {node['operator']} " + self.expression(node["right"], 3)

    def _expr_ConditionalExpression(self, node: dict) -> str:
        return (
            self.expression(node["test"], 5)
            + " ? " + self.expression(node["consequent"], 3)
            + " : " + self.expression(node["alternate"], 3)
        )

    def arguments(self, arguments: list) -> str:
        return "(" + ", ".join(self.expression(argument, 3) for argument in arguments) + ")"

    def _expr_CallExpression(self, node: dict) -> str:
        callee = node["callee"]
        if callee["type"] == "SequenceExpression":
            callee_text = "(" + self.expression(callee) + ")"
        else:
            callee_text = self.expression(callee, 19)
        return callee_text + self.arguments(node["arguments"])

    def _expr_NewExpression(self, node: dict) -> str:
        callee = node["callee"]
        needs_parens = False
        current = callee
        while current["type"] == "MemberExpression":
            current = current["object"]
        if current["type"] == "CallExpression":
            needs_parens = True
        callee_text = self.expression(callee, 19)
        if needs_parens and not callee_text.startswith("("):
            callee_text = f"({callee_text})"
        return "new " + callee_text + self.arguments(node.get("arguments") or [])

    def _expr_MemberExpression(self, node: dict) -> str:
        obj = node["object"]
        object_text = self.expression(obj, 19)
        if obj["type"] == "Literal" and isinstance(obj.get("raw"), str) and obj["raw"].isdigit():
            object_text = f"({object_text})"
        if node.get("computed"):
            return object_text + "[" + self.expression(node["property"]) + "]"
        return object_text + "." + node["property"]["name"]

    def _expr_SpreadElement(self, node: dict) -> str:
        return "..." + self.expression(node["argument"], 3)

    def _expr_AwaitExpression(self, node: dict) -> str:
        return "await " + self.expression(node["argument"], 17)

    def _expr_YieldExpression(self, node: dict) -> str:
        text = "yield*" if node.get("delegate") else "yield"
        if node.get("argument") is not None:
            text += " " + self.expression(node["argument"], 3)
        return text

    # -- patterns -------------------------------------------------------

    def pattern(self, node: dict) -> str:
        node_type = node["type"]
        if node_type == "ObjectPattern":
            return self.object_properties(node["properties"], pattern=True)
        if node_type == "ArrayPattern":
            elements = node["elements"]
            parts = ["" if element is None else self.pattern(element) for element in elements]
            text = ", ".join(parts)
            if elements and elements[-1] is None:
                text += ","
            return "[" + text + "]"
        if node_type == "AssignmentPattern":
            return self.pattern(node["left"]) + " = " + self.expression(node["right"], 3)
        if node_type == "RestElement":
            return "..." + self.pattern(node["argument"])
        if node_type == "VariableDeclaration":
            return self._stmt_VariableDeclaration(node, semicolon=False)
        return self.expression(node, 3)

    def pattern_property(self, prop: dict) -> str:
        if prop["type"] == "RestElement":
            return "..." + self.pattern(prop["argument"])
        key = prop["key"]
        value = prop["value"]
        if not prop.get("computed") and is_identifier(key):
            if is_identifier(value, key["name"]):
                return key["name"]
            if value["type"] == "AssignmentPattern" and is_identifier(value["left"], key["name"]):
                return self.pattern(value)
        if not prop.get("computed") and key["type"] == "Literal" and isinstance(key.get("value"), str) \
                and key.get("raw") is None and is_identifier_name(key["value"]):
            return key["value"] + ": " + self.pattern(value)
        return self.property_key(prop) + ": " + self.pattern(value)

    def _expr_ObjectPattern(self, node: dict) -> str:
        return self.pattern(node)

    def _expr_ArrayPattern(self, node: dict) -> str:
        return self.pattern(node)

    def _expr_AssignmentPattern(self, node: dict) -> str:
        return self.pattern(node)

    def _expr_RestElement(self, node: dict) -> str:
        return self.pattern(node)

    # -- JSX ------------------------------------------------------------

    def jsx_name(self, node: dict) -> str:
        node_type = node["type"]
        if node_type == "JSXIdentifier":
            return node["name"]
        if node_type == "JSXMemberExpression":
            return self.jsx_name(node["object"]) + "." + self.jsx_name(node["property"])
        if node_type == "JSXNamespacedName":
            return self.jsx_name(node["namespace"]) + ":" + self.jsx_name(node["name"])
        raise UnsupportedConstruct(f"Cannot print JSX name {node_type}")

    def jsx_attribute(self, node: dict) -> str:
        if node["type"] == "JSXSpreadAttribute":
            return "{..." + self.expression(node["argument"], 3) + "}"
        name = self.jsx_name(node["name"])
        value = node.get("value")
        if value is None:
            return name
        if value["type"] == "Literal":
            return name + "=" + self.literal(value)
        return name + "=" + self.expression(value)

    def jsx_children(self, children: list) -> str:
        if any(child.get("synthetic") for child in children):
            self.indent += 1
            lines = [
                self._pad() + self.expression(child)
                for child in children
                if not child.get("synthetic")
            ]
            self.indent -= 1
            return "\n" + "\n".join(lines) + "\n" + self._pad()
        return "".join(self.expression(child) for child in children)

    def _expr_JSXElement(self, node: dict) -> str:
        opening = node["openingElement"]
        name = self.jsx_name(opening["name"])
        attributes = "".join(" " + self.jsx_attribute(attribute) for attribute in opening.get("attributes") or [])
        if opening.get("selfClosing") or node.get("closingElement") is None:
            return f"<{name}{attributes} />"
        closing = self.jsx_name(node["closingElement"]["name"])
        return f"<{name}{attributes}>" + self.jsx_children(node.get("children") or []) + f"</{closing}>"

    def _expr_JSXFragment(self, node: dict) -> str:
        return "<>" + self.jsx_children(node.get("children") or []) + "</>"

    def _expr_JSXText(self, node: dict) -> str:
        raw = node.get("raw")
        return raw if raw is not None else node["value"]

    def _expr_JSXExpressionContainer(self, node: dict) -> str:
        expression = node["expression"]
        if expression["type"] == "JSXEmptyExpression":
            return "{" + self._leading_comments(expression, False).rstrip() + "}"
        return "{" + self.expression(expression) + "}"

    def _expr_JSXSpreadChild(self, node: dict) -> str:
        return "{..." + self.expression(node["expression"]) + "}"


def generate_code(tree: Union[ProgramTree, dict], source: Optional[str] = None) -> str:
    """Print a parsed program (or any node) back to JavaScript.

    Args:
        tree: ProgramTree from ``parse_javascript`` or an ESTree node
        source: Original text, used to keep blank lines between statements

    Returns:
        Generated source code
    """
    if isinstance(tree, ProgramTree):
        return CodePrinter(tree.source).print(tree.program)
    return CodePrinter(source).print(tree)


def save_output(
    code: str,
    output_path: Path,
    create_dirs: bool = True,
    quiet: bool = False,
) -> None:
    """Save code to file.

    Args:
        code: Source code to save
        output_path: Path to save to
        create_dirs: Whether to create parent directories
        quiet: Skip the confirmation line
    """
    if create_dirs:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    output_path.write_text(code, encoding="utf-8")
    if not quiet:
        console.print(f"[green]Saved output to: {output_path}[/green]")
