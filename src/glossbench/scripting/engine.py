"""Sandboxed evaluation of user-authored rule scripts.

Rule scripts are small Python modules defining ``transform(word)`` or
``tokenize(line)``. Before compilation the syntax tree is checked against
the disabled-symbol list and a set of forbidden statements; at run time a
trace hook charges every executed line against an operation budget and
tracks call depth. Scripts see a reduced set of builtins with no file,
network or process access. Builtins that walk an iterable charge each item
they pull, ``range`` refuses spans larger than the remaining budget, and
``*``, ``**`` and ``<<`` charge for the size of what they build.

One sandbox exists per thread. :func:`with_engine` hands it to a callable;
tests can swap it with :func:`set_engine` or pass their own sandbox to the
rule objects directly.
"""
from __future__ import annotations

import ast
import builtins
import logging
import sys
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar

from ..common.config import DISABLED_SYMBOLS, Settings, load_settings
from ..common.errors import ScriptExecutionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCRIPT_FILENAME = "<glossbench-script>"

_FORBIDDEN_NODES: tuple[type[ast.AST], ...] = (
    ast.Import,
    ast.ImportFrom,
    ast.Global,
    ast.Nonlocal,
    ast.ClassDef,
    ast.AsyncFunctionDef,
    ast.Await,
    ast.AsyncFor,
    ast.AsyncWith,
    ast.With,
    ast.Try,
    ast.Yield,
    ast.YieldFrom,
) + tuple(getattr(ast, name) for name in ("TryStar",) if hasattr(ast, name))

# Frame, code and generator internals reachable without dunder names.
_UNSAFE_ATTRIBUTE_PREFIXES = ("_", "gi_", "cr_", "ag_", "f_", "tb_", "co_")
_UNSAFE_ATTRIBUTES = frozenset({"format", "format_map", "mro"})

_SAFE_BUILTIN_NAMES = (
    "abs",
    "bool",
    "chr",
    "float",
    "int",
    "len",
    "ord",
    "reversed",
    "round",
    "str",
    "Exception",
    "IndexError",
    "KeyError",
    "TypeError",
    "ValueError",
)

# Operators whose result can grow far faster than the lines that produce it.
# Scripts reach them through helpers that charge the result size first.
_METERED_OPERATORS: dict[type[ast.operator], str] = {
    ast.Mult: "__glossbench_mul__",
    ast.Pow: "__glossbench_pow__",
    ast.LShift: "__glossbench_lshift__",
}


@dataclass(frozen=True)
class CompiledScript:
    """A validated script ready to run; the unit cached by rules."""

    source: str
    code: object
    functions: frozenset[str]


class _LimitExceeded(Exception):
    pass


class _ScriptValidator(ast.NodeVisitor):
    def __init__(self, disabled: frozenset[str]) -> None:
        self.disabled = disabled
        self.problems: list[str] = []

    def _report(self, node: ast.AST, message: str) -> None:
        line = getattr(node, "lineno", None)
        self.problems.append(f"line {line}: {message}" if line else message)

    def _check_identifier(self, node: ast.AST, name: str) -> None:
        if name in self.disabled:
            self._report(node, f"'{name}' is disabled")
        elif name.startswith("__"):
            self._report(node, f"dunder name '{name}' is not allowed")

    def generic_visit(self, node: ast.AST) -> None:
        if isinstance(node, _FORBIDDEN_NODES):
            self._report(node, f"{type(node).__name__} is not allowed in rule scripts")
            return
        super().generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        self._check_identifier(node, node.id)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        attr = node.attr
        if attr in self.disabled:
            self._report(node, f"'{attr}' is disabled")
        elif attr in _UNSAFE_ATTRIBUTES or attr.startswith(_UNSAFE_ATTRIBUTE_PREFIXES):
            self._report(node, f"attribute '{attr}' is not allowed")
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._check_identifier(node, node.name)
        self.generic_visit(node)

    def visit_arg(self, node: ast.arg) -> None:
        self._check_identifier(node, node.arg)
        self.generic_visit(node)

    def visit_keyword(self, node: ast.keyword) -> None:
        if node.arg is not None:
            self._check_identifier(node, node.arg)
        self.generic_visit(node)

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        if type(node.op) in _METERED_OPERATORS and not isinstance(node.target, ast.Name):
            self._report(node, "in-place *, ** or << needs a plain name on the left")
        self.generic_visit(node)


class _MeterArithmetic(ast.NodeTransformer):
    """Route metered operators through the charging helpers."""

    @staticmethod
    def _helper_call(op: ast.operator, left: ast.expr, right: ast.expr) -> ast.Call | None:
        helper = _METERED_OPERATORS.get(type(op))
        if helper is None:
            return None
        return ast.Call(func=ast.Name(id=helper, ctx=ast.Load()), args=[left, right], keywords=[])

    def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
        self.generic_visit(node)
        call = self._helper_call(node.op, node.left, node.right)
        return node if call is None else ast.copy_location(call, node)

    def visit_AugAssign(self, node: ast.AugAssign) -> ast.AST:
        self.generic_visit(node)
        if not isinstance(node.target, ast.Name):
            return node
        current = ast.Name(id=node.target.id, ctx=ast.Load())
        call = self._helper_call(node.op, current, node.value)
        if call is None:
            return node
        return ast.copy_location(ast.Assign(targets=[node.target], value=call), node)


def _tree_depth(tree: ast.AST) -> int:
    deepest = 0
    stack = [(tree, 1)]
    while stack:
        node, depth = stack.pop()
        if depth > deepest:
            deepest = depth
        stack.extend((child, depth + 1) for child in ast.iter_child_nodes(node))
    return deepest


class _Budget:
    """Trace hook enforcing the operation and call-depth limits."""

    def __init__(self, max_operations: int, max_depth: int) -> None:
        self.remaining = max_operations
        self.max_depth = max_depth
        self.depth = 0

    def trace_calls(self, frame, event, arg):  # noqa: ANN001 - sys.settrace signature
        if frame.f_code.co_filename != SCRIPT_FILENAME:
            return None
        self.depth += 1
        if self.depth > self.max_depth:
            raise _LimitExceeded("maximum call depth exceeded")
        self.charge()
        return self.trace_lines

    def trace_lines(self, frame, event, arg):  # noqa: ANN001
        if event == "line":
            self.charge()
        elif event == "return":
            self.depth -= 1
        return self.trace_lines

    def charge(self, amount: int = 1) -> None:
        self.remaining -= amount
        if self.remaining < 0:
            raise _LimitExceeded("operation limit exceeded")


_RUNNING = threading.local()


@contextmanager
def _traced(budget: _Budget) -> Iterator[None]:
    previous = sys.gettrace()
    outer_budget = getattr(_RUNNING, "budget", None)
    _RUNNING.budget = budget
    sys.settrace(budget.trace_calls)
    try:
        yield
    finally:
        sys.settrace(previous)
        _RUNNING.budget = outer_budget


def _active_budget() -> _Budget:
    budget = getattr(_RUNNING, "budget", None)
    if budget is None:
        raise RuntimeError("sandbox builtins used outside a script call")
    return budget


# Builtins that consume iterables in C never produce line events, so the
# wrappers below charge one operation per item they pull.
def _metered(iterable: Iterable[object]) -> Iterator[object]:
    budget = _active_budget()

    def pull() -> Iterator[object]:
        for item in iterable:
            budget.charge()
            yield item

    return pull()


def _range(*args: int) -> range:
    span = range(*args)
    try:
        size = len(span)
    except OverflowError:
        size = None
    if size is None or size > _active_budget().remaining:
        raise _LimitExceeded("operation limit exceeded")
    return span


def _sum(iterable, /, start=0):
    return sum(_metered(iterable), start)


def _sorted(iterable, /, *, key=None, reverse=False):
    return sorted(_metered(iterable), key=key, reverse=reverse)


def _map(function, *iterables):
    return map(function, *(_metered(it) for it in iterables))


def _filter(function, iterable):
    return filter(function, _metered(iterable))


def _zip(*iterables, strict=False):
    return zip(*(_metered(it) for it in iterables), strict=strict)


def _enumerate(iterable, start=0):
    return enumerate(_metered(iterable), start)


def _any(iterable):
    return any(_metered(iterable))


def _all(iterable):
    return all(_metered(iterable))


def _extreme(pick: Callable[..., object]) -> Callable[..., object]:
    def bounded(*args, **kwargs):
        if len(args) == 1:
            return pick(_metered(args[0]), **kwargs)
        return pick(*args, **kwargs)

    return bounded


def _container(kind: type) -> Callable[..., object]:
    def build(*args):
        if len(args) > 1:
            raise TypeError(f"{kind.__name__} expected at most 1 argument, got {len(args)}")
        if not args:
            return kind()
        return kind(_metered(args[0]))

    return build


def _dict(*args, **kwargs):
    if len(args) > 1:
        raise TypeError(f"dict expected at most 1 argument, got {len(args)}")
    _active_budget().charge(len(kwargs))
    if not args:
        return dict(**kwargs)
    source = args[0]
    pairs = source.items() if isinstance(source, Mapping) else source
    return dict(_metered(pairs), **kwargs)


_list = _container(list)
_tuple = _container(tuple)
_set = _container(set)

# isinstance() must still understand the wrapped constructors.
_WRAPPED_TYPES: dict[object, type] = {
    _list: list,
    _tuple: tuple,
    _set: set,
    _dict: dict,
    _range: range,
    _map: map,
    _filter: filter,
    _zip: zip,
    _enumerate: enumerate,
}


def _real_classinfo(classinfo):
    if isinstance(classinfo, tuple):
        return tuple(_real_classinfo(item) for item in classinfo)
    return _WRAPPED_TYPES.get(classinfo, classinfo)


def _isinstance(obj, classinfo):
    return isinstance(obj, _real_classinfo(classinfo))


_SEQUENCE_TYPES = (str, bytes, list, tuple)


def _multiply(left, right):
    if isinstance(left, _SEQUENCE_TYPES) and isinstance(right, int):
        _active_budget().charge(max(right, 0) * len(left))
    elif isinstance(right, _SEQUENCE_TYPES) and isinstance(left, int):
        _active_budget().charge(max(left, 0) * len(right))
    elif isinstance(left, int) and isinstance(right, int):
        _active_budget().charge((left.bit_length() + right.bit_length()) // 64)
    return left * right


def _power(base, exponent):
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0 and abs(base) > 1:
        _active_budget().charge(exponent * base.bit_length() // 64)
    return base**exponent


def _shift(value, amount):
    if isinstance(value, int) and isinstance(amount, int) and amount > 0:
        _active_budget().charge(amount // 64)
    return value << amount


_SAFE_BUILTINS: dict[str, object] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}
_SAFE_BUILTINS.update(
    {
        "all": _all,
        "any": _any,
        "dict": _dict,
        "enumerate": _enumerate,
        "filter": _filter,
        "isinstance": _isinstance,
        "list": _list,
        "map": _map,
        "max": _extreme(max),
        "min": _extreme(min),
        "range": _range,
        "set": _set,
        "sorted": _sorted,
        "sum": _sum,
        "tuple": _tuple,
        "zip": _zip,
        _METERED_OPERATORS[ast.Mult]: _multiply,
        _METERED_OPERATORS[ast.Pow]: _power,
        _METERED_OPERATORS[ast.LShift]: _shift,
    }
)


class ScriptSandbox:
    """Compile and run rule scripts under fixed limits."""

    def __init__(
        self,
        *,
        max_depth: int,
        max_operations: int,
        disabled_symbols: frozenset[str] = DISABLED_SYMBOLS,
    ) -> None:
        self.max_depth = max_depth
        self.max_operations = max_operations
        self.disabled_symbols = frozenset(disabled_symbols)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ScriptSandbox":
        active = settings or load_settings()
        return cls(
            max_depth=active.max_script_depth,
            max_operations=active.max_script_operations,
        )

    def compile(self, script: str) -> CompiledScript:
        """Parse and validate ``script``.

        Raises :class:`ScriptExecutionError` on syntax errors, forbidden
        constructs, disabled symbols or excessive nesting.
        """

        try:
            tree = ast.parse(script, filename=SCRIPT_FILENAME, mode="exec")
        except SyntaxError as exc:
            raise ScriptExecutionError(
                f"compilation error: {exc.msg} (line {exc.lineno})"
            ) from exc
        except (ValueError, RecursionError, MemoryError) as exc:
            raise ScriptExecutionError(f"compilation error: {exc}") from exc

        if _tree_depth(tree) > self.max_depth:
            raise ScriptExecutionError("compilation error: expression nesting too deep")

        validator = _ScriptValidator(self.disabled_symbols)
        try:
            validator.visit(tree)
        except RecursionError as exc:
            raise ScriptExecutionError("compilation error: expression nesting too deep") from exc
        if validator.problems:
            raise ScriptExecutionError("compilation error: " + "; ".join(validator.problems))

        metered = ast.fix_missing_locations(_MeterArithmetic().visit(tree))
        code = compile(metered, SCRIPT_FILENAME, "exec")
        functions = frozenset(
            node.name for node in tree.body if isinstance(node, ast.FunctionDef)
        )
        return CompiledScript(source=script, code=code, functions=functions)

    def call(self, compiled: CompiledScript, fn_name: str, args: Sequence[object]) -> object:
        """Run ``fn_name`` from ``compiled`` in a fresh namespace."""

        if fn_name not in compiled.functions:
            raise ScriptExecutionError(f"script does not define '{fn_name}'")

        namespace: dict[str, object] = {
            "__builtins__": dict(_SAFE_BUILTINS),
            "__name__": "rule_script",
        }
        budget = _Budget(self.max_operations, self.max_depth)
        try:
            with _traced(budget):
                exec(compiled.code, namespace)  # noqa: S102 - validated, sandboxed code
                return namespace[fn_name](*args)  # type: ignore[operator]
        except _LimitExceeded as exc:
            logger.debug("Script stopped by sandbox limit", extra={"function": fn_name})
            raise ScriptExecutionError(f"{fn_name}: {exc}") from None
        except RecursionError as exc:
            raise ScriptExecutionError(f"{fn_name}: maximum recursion depth exceeded") from exc
        except Exception as exc:
            raise ScriptExecutionError(
                f"{fn_name} function error: {type(exc).__name__}: {exc}"
            ) from exc


_LOCAL = threading.local()


def get_engine() -> ScriptSandbox:
    """Return this thread's sandbox, creating it on first use."""

    engine = getattr(_LOCAL, "engine", None)
    if engine is None:
        engine = ScriptSandbox.from_settings()
        _LOCAL.engine = engine
        logger.debug(
            "Created script sandbox",
            extra={"thread": threading.current_thread().name},
        )
    return engine


def set_engine(engine: ScriptSandbox | None) -> None:
    """Replace this thread's sandbox; ``None`` resets to a fresh default."""

    _LOCAL.engine = engine


def with_engine(fn: Callable[[ScriptSandbox], T]) -> T:
    """Run ``fn`` with the calling thread's sandbox."""

    return fn(get_engine())


__all__ = [
    "CompiledScript",
    "SCRIPT_FILENAME",
    "ScriptSandbox",
    "get_engine",
    "set_engine",
    "with_engine",
]
