"""OpenQASM 2.0 parsing and emission.

The parser accepts the subset of OpenQASM 2.0 that maps onto the circuit
IR: register declarations, gate applications (with arithmetic angle
expressions over ``pi``), register broadcasting, ``measure``, ``reset``
and ``barrier``.  Custom ``gate`` definitions, ``opaque`` declarations
and classically controlled ``if`` statements are rejected.

The emitter writes one statement per line and formats angles with
Python's shortest round-trip ``repr`` so that parsing the emitted text
reproduces the circuit exactly.
"""

from __future__ import annotations

import ast
import logging
import math
import operator
import re
from dataclasses import dataclass

from .circuit import Circuit, Gate
from .exceptions import CircuitError, ParseError, UnsupportedGateError

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^OPENQASM\s+(\d+)(?:\.(\d+))?$")
_INCLUDE_RE = re.compile(r'^include\s+"[^"]*"$')
_REG_RE = re.compile(r"^(qreg|creg)\s+([A-Za-z_]\w*)\s*\[\s*(\d+)\s*\]$")
_MEASURE_RE = re.compile(r"^measure\s+(.+?)\s*->\s*(.+)$", re.S)
_APPLY_RE = re.compile(r"^([A-Za-z_]\w*)\s*(?:\((.*)\))?\s*(.*)$", re.S)
_ARG_RE = re.compile(r"^([A-Za-z_]\w*)\s*(?:\[\s*(\d+)\s*\])?$")

# Built-in OpenQASM 2.0 primitives map onto the qelib1 names.
_BUILTIN_ALIASES = {"U": "u3", "CX": "cx"}
_UNSUPPORTED_KEYWORDS = ("gate", "opaque", "if")


# ---------------------------------------------------------------------------
# Angle expressions
# ---------------------------------------------------------------------------

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {ast.USub: operator.neg, ast.UAdd: operator.pos}
_FUNCTIONS = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "exp": math.exp,
    "ln": math.log,
    "sqrt": math.sqrt,
}


def _eval_node(node: ast.AST) -> float:
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return float(node.value)
    if isinstance(node, ast.Name) and node.id == "pi":
        return math.pi
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_eval_node(node.left), _eval_node(node.right))
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and len(node.args) == 1
        and not node.keywords
    ):
        return _FUNCTIONS[node.func.id](_eval_node(node.args[0]))
    raise ValueError(f"unsupported expression element {ast.dump(node)}")


def evaluate_expression(text: str) -> float:
    """Evaluate an OpenQASM 2.0 angle expression such as ``-pi/4``.

    Raises:
        ValueError: If the expression is malformed or not a real number.
    """
    try:
        tree = ast.parse(text.strip().replace("^", "**"), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"malformed expression '{text}'") from e
    try:
        value = _eval_node(tree.body)
    except (ArithmeticError, TypeError) as e:
        raise ValueError(f"cannot evaluate '{text}': {e}") from e
    if isinstance(value, complex) or not math.isfinite(value):
        raise ValueError(f"expression '{text}' is not a finite real number")
    return float(value)


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not nested inside parentheses."""
    parts, depth, current = [], 0, []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


@dataclass
class _Register:
    name: str
    offset: int
    size: int


def _statements(source: str) -> list[tuple[int, str]]:
    """Split *source* into ``(line, statement)`` pairs with comments removed."""
    statements: list[tuple[int, str]] = []
    buffer: list[str] = []
    start_line = None
    for lineno, raw in enumerate(source.splitlines(), start=1):
        line = raw.split("//", 1)[0]
        for ch in line:
            if ch == ";":
                text = "".join(buffer).strip()
                if text:
                    statements.append((start_line, text))
                buffer, start_line = [], None
                continue
            if start_line is None and not ch.isspace():
                start_line = lineno
            buffer.append(ch)
        buffer.append("\n")
    trailing = "".join(buffer).strip()
    if trailing:
        raise ParseError(f"statement '{trailing}' is missing a terminating ';'", start_line)
    return statements


class _QasmParser:
    def __init__(self, name: str) -> None:
        self.name = name
        self.qregs: dict[str, _Register] = {}
        self.cregs: dict[str, _Register] = {}
        self.num_qubits = 0
        self.num_clbits = 0
        self.gates: list[Gate] = []
        self.measurements: list[tuple[int, int]] = []

    def parse(self, source: str) -> Circuit:
        statements = _statements(source)
        if not statements:
            raise ParseError("empty program: expected an OPENQASM header", 1)

        line, header = statements[0]
        match = _HEADER_RE.match(header)
        if match is None:
            raise ParseError("missing 'OPENQASM 2.0;' header", line)
        if match.group(1) != "2":
            raise ParseError(f"unsupported OpenQASM version '{header[8:].strip()}'", line)

        for line, text in statements[1:]:
            self._statement(text, line)

        if self.num_qubits == 0:
            raise ParseError("program declares no qreg")

        logger.debug(
            "Parsed QASM program: %d qubits, %d gates, %d measurements",
            self.num_qubits,
            len(self.gates),
            len(self.measurements),
        )
        return Circuit(
            num_qubits=self.num_qubits,
            gates=tuple(self.gates),
            num_clbits=self.num_clbits,
            measurements=tuple(self.measurements),
            name=self.name,
        )

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _statement(self, text: str, line: int) -> None:
        keyword = text.split(None, 1)[0].split("(", 1)[0]

        if keyword == "OPENQASM":
            raise ParseError("duplicate OPENQASM header", line)
        if keyword == "include":
            if not _INCLUDE_RE.match(text):
                raise ParseError(f"malformed include '{text}'", line)
            return
        if keyword in ("qreg", "creg"):
            self._declare(text, line)
            return
        if keyword in _UNSUPPORTED_KEYWORDS or "{" in text:
            raise ParseError(f"'{keyword}' statements are not supported", line)
        if keyword == "barrier":
            self._operands(text[len("barrier"):], self.qregs, line)
            return
        if keyword == "measure":
            self._measure(text, line)
            return
        self._apply(text, line)

    def _declare(self, text: str, line: int) -> None:
        match = _REG_RE.match(text)
        if match is None:
            raise ParseError(f"malformed register declaration '{text}'", line)
        kind, name, size = match.group(1), match.group(2), int(match.group(3))
        if name in self.qregs or name in self.cregs:
            raise ParseError(f"register '{name}' is already declared", line)
        if size < 1:
            raise ParseError(f"register '{name}' must have at least one bit", line)
        if kind == "qreg":
            self.qregs[name] = _Register(name, self.num_qubits, size)
            self.num_qubits += size
        else:
            self.cregs[name] = _Register(name, self.num_clbits, size)
            self.num_clbits += size

    def _resolve(self, arg: str, registers: dict[str, _Register], line: int):
        match = _ARG_RE.match(arg.strip())
        if match is None:
            raise ParseError(f"malformed operand '{arg.strip()}'", line)
        name, index = match.group(1), match.group(2)
        reg = registers.get(name)
        if reg is None:
            raise ParseError(f"undeclared register '{name}'", line)
        if index is None:
            return [reg.offset + i for i in range(reg.size)], True
        i = int(index)
        if i >= reg.size:
            raise ParseError(
                f"index {i} is out of range for register {name}[{reg.size}]", line
            )
        return [reg.offset + i], False

    def _operands(self, text: str, registers, line: int) -> list[list[int]]:
        """Resolve comma-separated operands and expand register broadcasts."""
        args = _split_top_level(text)
        if any(not a for a in args):
            raise ParseError("missing operand", line)
        resolved = [self._resolve(a, registers, line) for a in args]
        sizes = {len(idx) for idx, whole in resolved if whole}
        if len(sizes) > 1:
            raise ParseError("broadcast registers have different sizes", line)
        width = sizes.pop() if sizes else 1
        return [
            [idx[k] if whole else idx[0] for idx, whole in resolved]
            for k in range(width)
        ]

    def _measure(self, text: str, line: int) -> None:
        match = _MEASURE_RE.match(text)
        if match is None:
            raise ParseError(f"malformed measure statement '{text}'", line)
        qubits, qwhole = self._resolve(match.group(1), self.qregs, line)
        clbits, cwhole = self._resolve(match.group(2), self.cregs, line)
        if len(qubits) != len(clbits) or qwhole != cwhole:
            raise ParseError("measure operands have different sizes", line)
        self.measurements.extend(zip(qubits, clbits))

    def _apply(self, text: str, line: int) -> None:
        match = _APPLY_RE.match(text)
        if match is None:
            raise ParseError(f"malformed statement '{text}'", line)
        name = _BUILTIN_ALIASES.get(match.group(1), match.group(1))
        params: list[float] = []
        if match.group(2) is not None:
            for expr in _split_top_level(match.group(2)):
                try:
                    params.append(evaluate_expression(expr))
                except ValueError as e:
                    raise ParseError(str(e), line) from e
        if not match.group(3).strip():
            raise ParseError(f"gate '{name}' has no operands", line)
        if self.measurements:
            raise ParseError("gates after measurement are not supported", line)

        for qubits in self._operands(match.group(3), self.qregs, line):
            try:
                self.gates.append(Gate(name, qubits, params))
            except UnsupportedGateError as e:
                raise ParseError(f"unsupported gate '{name}'", line) from e
            except CircuitError as e:
                raise ParseError(str(e), line) from e


def parse_qasm(source: str, name: str = "qasm") -> Circuit:
    """Parse OpenQASM 2.0 *source* into a :class:`Circuit`.

    Raises:
        ParseError: On a missing header, unsupported gate or statement,
            undeclared register, or out-of-range index.
    """
    return _QasmParser(name).parse(source)


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


def circuit_to_qasm(circuit: Circuit) -> str:
    """Emit OpenQASM 2.0 source for *circuit*."""
    lines: list[str] = [
        "OPENQASM 2.0;",
        'include "qelib1.inc";',
        f"qreg q[{circuit.num_qubits}];",
    ]
    if circuit.num_clbits:
        lines.append(f"creg c[{circuit.num_clbits}];")

    for gate in circuit.gates:
        args = ",".join(f"q[{q}]" for q in gate.qubits)
        if gate.params:
            params = ",".join(repr(p) for p in gate.params)
            lines.append(f"{gate.name}({params}) {args};")
        else:
            lines.append(f"{gate.name} {args};")

    for qubit, clbit in circuit.measurements:
        lines.append(f"measure q[{qubit}] -> c[{clbit}];")

    return "\n".join(lines) + "\n"
