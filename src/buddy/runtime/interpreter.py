"""
Tree-walking interpreter for buddy scripts.

Evaluates AST nodes to produce runtime values. Every node evaluates to a
Primitive or None (no value). Return, break, continue and exit unwind the
evaluator as control signals; errors are EvaluationErrors located at the
innermost node that was being evaluated.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, TextIO, Tuple, Union

from .values import (
    Primitive, Int, Float, Bool, String, Array, Dict,
    Container, Sliceable, Iterable,
    binary_operation, unary_operation, unwrap, wrap, type_name,
)
from .context import (
    Environment, ExecutionContext,
    ReturnSignal, BreakSignal, ContinueSignal, ExitSignal, ControlSignal,
)
from .builtins import BuiltinFunction, BuiltinModule, BuiltinRegistry, get_builtin_registry
from .modules import UserFunction, UserModule, ModuleLoader

from ..ast import (
    AstNode, Expression, Script, Block, FunctionDef,
    Literal, Identifier, UnaryOp, BinaryOp, Assignment,
    ListLiteral, DictLiteral, IndexAccess, Slice, PathAccess,
    FunctionCall, IfExpr, ListComprehension, DictComprehension, ComprehensionClause,
    LetStatement, ReturnStatement, BreakStatement, ContinueStatement,
    AssertStatement, WhileStatement, ForStatement, ForEachStatement,
    ImportStatement,
)
from ..config import InterpreterConfig
from ..errors import (
    BuddyError,
    EvaluationError,
    UnsupportedOperationError,
    UndefinedReferenceError,
    ControlFlowError,
    RecursionLimitError,
    AssertionFailedError,
    ArgumentError,
    ModuleError,
)
from ..parser import parse
from ..tokens import TokenType

logger = logging.getLogger(__name__)

# Host frames taken by one script call with a few nested blocks and operators
FRAMES_PER_CALL = 40
HOST_FRAME_MARGIN = 500


@dataclass
class ExecutionResult:
    """Result of running a script."""
    success: bool
    value: Optional[Primitive] = None
    error: Optional[BuddyError] = None
    exit_code: int = 0
    exited: bool = False  # stopped by exit()

    @property
    def raw(self) -> Any:
        """The script value as a host value."""
        return unwrap(self.value)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error)


def _misplaced_signal(signal: ControlSignal, ctx: ExecutionContext) -> ControlFlowError:
    keyword = "break" if isinstance(signal, BreakSignal) else "continue"
    err = ControlFlowError(f"'{keyword}' outside of a loop")
    if signal.span is not None:
        err.locate(signal.span, ctx.source_line(signal.span))
    return err


class Interpreter:
    """
    Tree-walking interpreter for buddy scripts.

    Evaluates AST nodes by dispatching to type-specific methods. The
    interpreter keeps its global environment and main module between
    run() calls, so successive snippets (REPL lines) share state.

    Usage:
        interp = Interpreter()
        result = interp.run("x = 1 + 2")
        result.raw   # 3
    """

    def __init__(self, config: Optional[InterpreterConfig] = None,
                 stdout: Optional[TextIO] = None,
                 registry: Optional[BuiltinRegistry] = None):
        self.config = config or InterpreterConfig()
        self.registry = registry or get_builtin_registry()
        self.loader = ModuleLoader(self.config, self.registry, executor=self._execute_module)
        self.context = ExecutionContext(
            max_depth=self.config.max_depth,
            stdout=stdout or sys.stdout,
        )
        self.main = UserModule("main", self.context.environment)
        self.context.modules.append(self.main)
        self._origins: List[Optional[str]] = []

    # =========================================================================
    # Public API
    # =========================================================================

    def define(self, name: str, value: Any, readonly: bool = False) -> None:
        """Bind a host value as a global variable visible to scripts."""
        self.main.environment.define(name, wrap(value), readonly)

    def run(self, source: str, filename: Optional[str] = None) -> ExecutionResult:
        """Parse and execute source text."""
        try:
            script = parse(source, filename)
        except BuddyError as err:
            return ExecutionResult(success=False, error=err, exit_code=1)
        return self.execute(script, source, filename)

    def execute(self, script: Script, source: str = "",
                filename: Optional[str] = None) -> ExecutionResult:
        """
        Execute a parsed script in the main module.

        Args:
            script: The parsed script
            source: Original source code for error messages
            filename: Name used in diagnostics and to resolve relative imports

        Returns:
            ExecutionResult with the script value or the error
        """
        self.context.add_source(filename, source)
        logger.debug("executing script %s", script.name)
        limit = sys.getrecursionlimit()
        needed = self.config.max_depth * FRAMES_PER_CALL + HOST_FRAME_MARGIN
        sys.setrecursionlimit(max(limit, needed))
        try:
            value = self._execute_script(script, self.main, filename)
        except ExitSignal as signal:
            return ExecutionResult(success=signal.code == 0, exit_code=signal.code, exited=True)
        except RecursionError:
            err = RecursionLimitError(
                "maximum call depth exceeded (host recursion limit)",
                hints=["lower max_depth or check for unbounded recursion"],
            )
            return ExecutionResult(success=False, error=err, exit_code=1)
        except BuddyError as err:
            return ExecutionResult(success=False, error=err, exit_code=1)
        finally:
            sys.setrecursionlimit(limit)
        return ExecutionResult(success=True, value=value)

    # =========================================================================
    # Scripts and Modules
    # =========================================================================

    def _execute_script(self, script: Script, module: UserModule,
                        filename: Optional[str]) -> Optional[Primitive]:
        """Register the script's functions, then run its statements."""
        ctx = self.context
        for definition in script.functions.values():
            try:
                module.define(definition)
            except ModuleError as err:
                raise err.locate(definition.span, ctx.source_line(definition.span))

        self._origins.append(filename)
        try:
            return self._run_statements(script.statements, ctx)
        except ReturnSignal as signal:
            return signal.value
        except (BreakSignal, ContinueSignal) as signal:
            raise _misplaced_signal(signal, ctx)
        finally:
            self._origins.pop()

    def _execute_module(self, script: Script, source: str, filename: str,
                        name: str) -> UserModule:
        """Evaluate an imported file in its own isolated module."""
        module = UserModule(name, Environment(name=f"module:{name}"))
        self.context.add_source(filename, source)
        with self.context.call_frame(module.environment, module):
            self._execute_script(script, module, filename)
        return module

    # =========================================================================
    # Dispatch
    # =========================================================================

    def evaluate(self, node: AstNode, ctx: ExecutionContext) -> Optional[Primitive]:
        """Evaluate a node, attaching its location to any evaluation error."""
        try:
            return self._evaluate(node, ctx)
        except EvaluationError as err:
            raise err.locate(node.span, ctx.source_line(node.span))

    def _evaluate(self, expr: AstNode, ctx: ExecutionContext) -> Optional[Primitive]:
        """Evaluate an expression to produce a value."""
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Identifier):
            return ctx.resolve(expr.name)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, ctx)
        elif isinstance(expr, UnaryOp):
            return unary_operation(expr.operator, self._value(expr.operand, ctx))
        elif isinstance(expr, Assignment):
            return self._eval_assignment(expr, ctx)
        elif isinstance(expr, FunctionCall):
            return self._eval_function_call(expr, ctx)
        elif isinstance(expr, PathAccess):
            return self._eval_path(expr, ctx)
        elif isinstance(expr, IndexAccess):
            return self._eval_index_access(expr, ctx)
        elif isinstance(expr, ListLiteral):
            return Array([self._value(elem, ctx) for elem in expr.elements])
        elif isinstance(expr, DictLiteral):
            return self._eval_dict_literal(expr, ctx)
        elif isinstance(expr, ListComprehension):
            return self._eval_list_comprehension(expr, ctx)
        elif isinstance(expr, DictComprehension):
            return self._eval_dict_comprehension(expr, ctx)
        elif isinstance(expr, IfExpr):
            return self._eval_if_expr(expr, ctx)
        elif isinstance(expr, Block):
            with ctx.new_scope("block"):
                return self._run_statements(expr.statements, ctx)
        elif isinstance(expr, LetStatement):
            value = self.evaluate(expr.value, ctx)
            ctx.define(expr.name, value)
            return value
        elif isinstance(expr, ReturnStatement):
            value = self.evaluate(expr.value, ctx) if expr.value is not None else None
            raise ReturnSignal(value, expr.span)
        elif isinstance(expr, BreakStatement):
            raise BreakSignal(expr.span)
        elif isinstance(expr, ContinueStatement):
            raise ContinueSignal(expr.span)
        elif isinstance(expr, AssertStatement):
            return self._execute_assert(expr, ctx)
        elif isinstance(expr, WhileStatement):
            return self._execute_while(expr, ctx)
        elif isinstance(expr, ForStatement):
            return self._execute_for(expr, ctx)
        elif isinstance(expr, ForEachStatement):
            return self._execute_foreach(expr, ctx)
        elif isinstance(expr, ImportStatement):
            return self._execute_import(expr, ctx)
        elif isinstance(expr, Script):
            return self._execute_script(expr, ctx.module, expr.name)
        elif isinstance(expr, FunctionDef):
            raise EvaluationError(f"function '{expr.name}' can only be declared at the top level")
        elif isinstance(expr, Slice):
            raise UnsupportedOperationError("slice used outside of an index expression")
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _value(self, expr: Expression, ctx: ExecutionContext) -> Primitive:
        """Evaluate an expression that must produce a value."""
        value = self.evaluate(expr, ctx)
        if value is None:
            raise UnsupportedOperationError("expression has no value")
        return value

    @staticmethod
    def _truthy(value: Optional[Primitive]) -> bool:
        return value is not None and value.is_truthy()

    def _run_statements(self, statements: List[Expression],
                        ctx: ExecutionContext) -> Optional[Primitive]:
        """Run statements in the current environment; the last value wins."""
        value = None
        for stmt in statements:
            value = self.evaluate(stmt, ctx)
        return value

    def _run_body(self, block: Block, ctx: ExecutionContext, scope: str) -> Optional[Primitive]:
        """Run a block in a fresh child environment."""
        with ctx.new_scope(scope):
            return self._run_statements(block.statements, ctx)

    def _iterable(self, expr: Expression, ctx: ExecutionContext) -> Iterable:
        value = self._value(expr, ctx)
        if not isinstance(value, Iterable):
            raise UnsupportedOperationError(f"{value.type_name} is not iterable")
        return value

    # =========================================================================
    # Expressions
    # =========================================================================

    def _eval_literal(self, lit: Literal) -> Primitive:
        """Evaluate a literal value."""
        if lit.literal_type == TokenType.INTEGER:
            return Int(int(lit.value))
        elif lit.literal_type == TokenType.DOUBLE:
            return Float(float(lit.value))
        elif lit.literal_type == TokenType.BOOLEAN:
            return Bool(bool(lit.value))
        elif lit.literal_type == TokenType.STRING:
            return String(str(lit.value))
        else:
            raise RuntimeError(f"Unknown literal type: {lit.literal_type}")

    def _eval_binary_op(self, op: BinaryOp, ctx: ExecutionContext) -> Primitive:
        """Evaluate both operands left to right, then dispatch on capability."""
        left = self._value(op.left, ctx)
        right = self._value(op.right, ctx)
        return binary_operation(op.operator, left, right)

    def _eval_assignment(self, assign: Assignment, ctx: ExecutionContext) -> Optional[Primitive]:
        target = assign.target
        if isinstance(target, Identifier):
            value = self.evaluate(assign.value, ctx)
            ctx.define(target.name, value)
            return value

        if isinstance(target, IndexAccess):
            container = self._value(target.object, ctx)
            if isinstance(target.index, Slice):
                raise UnsupportedOperationError("slices can not be assigned")
            key = self._value(target.index, ctx)
            value = self._value(assign.value, ctx)
            if not isinstance(container, Container):
                raise UnsupportedOperationError(
                    f"unsupported operation 'index assignment' for {container.type_name}")
            container.set(key, value)
            return value

        raise EvaluationError("invalid assignment target")

    def _eval_index_access(self, access: IndexAccess, ctx: ExecutionContext) -> Optional[Primitive]:
        obj = self._value(access.object, ctx)
        if isinstance(access.index, Slice):
            if not isinstance(obj, Sliceable):
                raise UnsupportedOperationError(f"unsupported operation 'slice' for {obj.type_name}")
            part = access.index
            start = self._value(part.start, ctx) if part.start is not None else None
            end = self._value(part.end, ctx) if part.end is not None else None
            step = self._value(part.step, ctx) if part.step is not None else None
            return obj.slice(start, end, step)

        key = self._value(access.index, ctx)
        if not isinstance(obj, Container):
            raise UnsupportedOperationError(f"unsupported operation 'index' for {obj.type_name}")
        return obj.get(key)

    def _eval_dict_literal(self, dct: DictLiteral, ctx: ExecutionContext) -> Primitive:
        result = Dict()
        for key_expr, value_expr in dct.entries:
            key = self._value(key_expr, ctx)
            result.set(key, self._value(value_expr, ctx))
        return result

    def _eval_if_expr(self, if_expr: IfExpr, ctx: ExecutionContext) -> Optional[Primitive]:
        """Evaluate if statements and ternaries; a missing branch yields no value."""
        condition = self.evaluate(if_expr.condition, ctx)
        branch = if_expr.then_branch if self._truthy(condition) else if_expr.else_branch
        if branch is None:
            return None
        with ctx.new_scope("if"):
            if isinstance(branch, Block):
                return self._run_statements(branch.statements, ctx)
            return self.evaluate(branch, ctx)

    # --- Comprehensions ---

    def _comprehend(self, clauses: List[ComprehensionClause], index: int,
                    ctx: ExecutionContext, emit: Callable[[], None]) -> None:
        """Walk the clauses as nested loops, calling emit for each binding."""
        if index == len(clauses):
            emit()
            return
        clause = clauses[index]
        iterable = self._iterable(clause.iterable, ctx)
        for item in iterable.iterate():
            with ctx.new_scope("comprehension"):
                ctx.define(clause.variable, item)
                if all(self._truthy(self.evaluate(cond, ctx)) for cond in clause.conditions):
                    self._comprehend(clauses, index + 1, ctx, emit)

    def _eval_list_comprehension(self, comp: ListComprehension,
                                 ctx: ExecutionContext) -> Primitive:
        results: List[Primitive] = []
        self._comprehend(comp.clauses, 0, ctx,
                         lambda: results.append(self._value(comp.element, ctx)))
        return Array(results)

    def _eval_dict_comprehension(self, comp: DictComprehension,
                                 ctx: ExecutionContext) -> Primitive:
        result = Dict()

        def emit() -> None:
            key = self._value(comp.key, ctx)
            result.set(key, self._value(comp.value, ctx))

        self._comprehend(comp.clauses, 0, ctx, emit)
        return result

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_assert(self, stmt: AssertStatement, ctx: ExecutionContext) -> Optional[Primitive]:
        value = self.evaluate(stmt.condition, ctx)
        if not self._truthy(value):
            raise AssertionFailedError("assertion failed")
        return value

    def _execute_while(self, stmt: WhileStatement, ctx: ExecutionContext) -> None:
        with ctx.new_scope("while"):
            while self._truthy(self.evaluate(stmt.condition, ctx)):
                try:
                    self._run_body(stmt.body, ctx, "while-body")
                except BreakSignal:
                    break
                except ContinueSignal:
                    continue
        return None

    def _execute_for(self, stmt: ForStatement, ctx: ExecutionContext) -> None:
        """C-style loop; the init clause lives in the loop environment."""
        with ctx.new_scope("for"):
            if stmt.init is not None:
                self.evaluate(stmt.init, ctx)
            while stmt.condition is None or self._truthy(self.evaluate(stmt.condition, ctx)):
                try:
                    self._run_body(stmt.body, ctx, "for-body")
                except BreakSignal:
                    break
                except ContinueSignal:
                    pass
                if stmt.increment is not None:
                    self.evaluate(stmt.increment, ctx)
        return None

    def _execute_foreach(self, stmt: ForEachStatement, ctx: ExecutionContext) -> None:
        iterable = self._iterable(stmt.iterable, ctx)
        for item in iterable.iterate():
            try:
                with ctx.new_scope("foreach"):
                    ctx.define(stmt.variable, item)
                    self._run_statements(stmt.body.statements, ctx)
            except BreakSignal:
                break
            except ContinueSignal:
                continue
        return None

    def _execute_import(self, stmt: ImportStatement, ctx: ExecutionContext) -> None:
        """Register a module (or selected functions) in the current module."""
        origin = self._origins[-1] if self._origins else None
        module = self.loader.load(stmt.path, origin)
        current = ctx.module

        if not stmt.symbols:
            current.register(stmt.bound_name, module)
            return None

        if isinstance(module, BuiltinModule):
            selected = module.select({s.name: s.bound_name for s in stmt.symbols})
            for alias, function in selected.functions.items():
                current.append(alias, function)
            return None

        for symbol in stmt.symbols:
            if not module.has_function(symbol.name):
                raise ModuleError(f"{symbol.name}: undefined function in module '{stmt.dotted_path}'")
            current.append(symbol.bound_name, module.lookup(symbol.name))
        return None

    # =========================================================================
    # Calls and Paths
    # =========================================================================

    def _eval_function_call(self, call: FunctionCall, ctx: ExecutionContext) -> Optional[Primitive]:
        """Resolve the callee in the current module, then in the core builtins."""
        module = ctx.module
        if module is not None and module.has_function(call.name):
            function = module.lookup(call.name)
        else:
            function = self.registry.get_function(call.name)
            if function is None:
                raise UndefinedReferenceError(f"{call.name}: function not defined")
        return self._invoke(function, call, ctx)

    def _evaluate_arguments(self, call: FunctionCall, ctx: ExecutionContext
                            ) -> Tuple[List[Optional[Primitive]], List[Tuple[str, Optional[Primitive]]]]:
        args = [self.evaluate(arg, ctx) for arg in call.arguments]
        named: List[Tuple[str, Optional[Primitive]]] = []
        seen = set()
        for arg in call.named_arguments:
            if arg.name in seen:
                raise ArgumentError(f"{call.name}: argument '{arg.name}' given more than once")
            seen.add(arg.name)
            named.append((arg.name, self.evaluate(arg.value, ctx)))
        return args, named

    def _invoke(self, function: Union[UserFunction, BuiltinFunction], call: FunctionCall,
                ctx: ExecutionContext) -> Optional[Primitive]:
        args, named = self._evaluate_arguments(call, ctx)
        if isinstance(function, BuiltinFunction):
            return function.call(ctx, args, dict(named))
        return self._call_user_function(function, args, named, ctx)

    def _call_user_function(self, function: UserFunction, args: List[Optional[Primitive]],
                            named: List[Tuple[str, Optional[Primitive]]],
                            ctx: ExecutionContext) -> Optional[Primitive]:
        """
        Bind arguments and run a user function.

        The function environment's parent is the defining module's
        environment, so bodies see module globals, never the caller's locals.
        """
        definition = function.definition
        params = definition.parameters
        if len(args) > len(params):
            raise ArgumentError(
                f"{function.name}: too many arguments: expected at most {len(params)}, got {len(args)}"
            )

        env = Environment(parent=function.module.environment, name=f"function:{function.name}")
        bound = set()
        for param, value in zip(params, args):
            env.define(param.name, value)
            bound.add(param.name)

        names = {p.name for p in params}
        for name, value in named:
            if name not in names:
                raise ArgumentError(f"{function.name}: unknown parameter '{name}'")
            if name in bound:
                raise ArgumentError(f"{function.name}: parameter '{name}' given more than once")
            env.define(name, value)
            bound.add(name)

        with ctx.call_frame(env, function.module):
            for param in params:
                if param.name in bound:
                    continue
                if param.default_value is None:
                    raise ArgumentError(f"{function.name}: missing argument '{param.name}'")
                env.define(param.name, self.evaluate(param.default_value, ctx))
            try:
                return self._run_statements(definition.body.statements, ctx)
            except ReturnSignal as signal:
                return signal.value
            except (BreakSignal, ContinueSignal) as signal:
                raise _misplaced_signal(signal, ctx)

    def _eval_path(self, path: PathAccess, ctx: ExecutionContext) -> Optional[Primitive]:
        """
        Evaluate dotted access.

        A path ending in a call walks imported modules (``mod.sub.fn()``);
        any other path reads string keys from a variable (``cfg.name``).
        """
        innermost: Expression = path
        while isinstance(innermost, PathAccess):
            innermost = innermost.member

        if isinstance(innermost, FunctionCall):
            module = ctx.module.get_module(path.name)
            member = path.member
            while isinstance(member, PathAccess):
                module = module.get_module(member.name)
                member = member.member
            return self._invoke(module.lookup(member.name), member, ctx)

        value = ctx.resolve(path.name)
        member = path.member
        while True:
            key = member.name
            if not isinstance(value, Container):
                raise UnsupportedOperationError(
                    f"unsupported operation 'member access' for {type_name(value)}")
            value = value.get(String(key))
            if not isinstance(member, PathAccess):
                return value
            member = member.member


# Convenience functions for simple execution

def compile_and_run(source: str, filename: Optional[str] = None,
                    config: Optional[InterpreterConfig] = None,
                    stdout: Optional[TextIO] = None) -> ExecutionResult:
    """
    High-level API to parse and run buddy source in one call.

        from buddy import compile_and_run

        result = compile_and_run('''
            def area(w, h=2) { return w * h }
            area(21)
        ''')

        if result.success:
            print(result.raw)      # 42
        else:
            print(result.error_message)

    Args:
        source: buddy source code as a string
        filename: Optional filename for error messages and imports
        config: Interpreter settings (defaults when omitted)
        stdout: Stream for print/printf (sys.stdout when omitted)

    Returns:
        ExecutionResult with the script value or the error
    """
    return Interpreter(config, stdout).run(source, filename)


def run_file(path: Union[str, Path], config: Optional[InterpreterConfig] = None,
             stdout: Optional[TextIO] = None) -> ExecutionResult:
    """
    Run a .bud file.

    Raises:
        OSError: If the file can not be read
    """
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    return Interpreter(config, stdout).run(source, str(path))
