"""Evaluation strategies for command code.

All strategies share one contract: given the code, the persisted sandbox
variables and the flattened namespace, return the modified sandbox together
with the result. The result may be an awaitable; the engine awaits it.

- ``SandboxedStrategy`` (default) compiles expressions with Jinja's
  ``SandboxedEnvironment``: unsafe attribute access is blocked and code sees
  nothing but the namespace it is given.
- ``DirectStrategy`` runs the code as Python. Only for trusted templates.
- ``CustomStrategy`` adapts a caller-supplied evaluator function.
"""

import ast
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from jinja2 import meta
from jinja2.sandbox import SandboxedEnvironment

from docx_report_engine.shared.config import CustomEvaluator, EvaluationConfig

from .code import split_statements

ASSIGNMENT_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)\s*(.+)$", re.DOTALL)

# Plain functions exposed to sandboxed code
SAFE_BUILTINS: Dict[str, Callable[..., Any]] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "enumerate": enumerate,
    "float": float,
    "int": int,
    "len": len,
    "list": list,
    "max": max,
    "min": min,
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": zip,
}

_RESERVED_NAMES = ("__code__", "__result__", "__builtins__")


@dataclass
class EvaluationOutcome:
    """Modified sandbox state and the (possibly awaitable) result."""

    sandbox: Dict[str, Any]
    result: Any


def _changed_names(
    scope: Mapping[str, Any],
    namespace: Mapping[str, Any],
    sandbox: Mapping[str, Any],
) -> Dict[str, Any]:
    updated = dict(sandbox)
    for name, value in scope.items():
        if name in _RESERVED_NAMES:
            continue
        if name not in namespace or namespace[name] is not value:
            updated[name] = value
    return updated


class EvaluationStrategy(ABC):
    """Interface shared by every way of running command code."""

    name = "abstract"

    @abstractmethod
    def evaluate(
        self,
        code: str,
        sandbox: Dict[str, Any],
        namespace: Dict[str, Any],
        context: Dict[str, Any],
    ) -> EvaluationOutcome:
        """Run ``code`` against ``namespace``.

        Args:
            code: Command code, already cleaned up
            sandbox: Variables persisted by earlier commands
            namespace: Every name visible to the code (sandbox included)
            context: Description of the execution context

        Returns:
            The updated sandbox and the result
        """


class SandboxedStrategy(EvaluationStrategy):
    """Evaluate Python-like expressions inside a Jinja sandbox.

    Statements of the form ``name = expression`` (separated by ``;`` or
    newlines) assign into the sandbox. The value of the last statement is the
    result. Names that are neither in the namespace nor Jinja globals raise
    NameError; missing attributes and keys evaluate to None. One instance,
    and therefore one environment, serves one run.
    """

    name = "sandboxed"

    def __init__(self) -> None:
        self.environment = SandboxedEnvironment(autoescape=False)
        self.environment.globals.update(SAFE_BUILTINS)
        self._compiled: Dict[str, Tuple[Any, FrozenSet[str]]] = {}

    def _compile(self, expression: str) -> Tuple[Any, FrozenSet[str]]:
        entry = self._compiled.get(expression)
        if entry is None:
            compiled = self.environment.compile_expression(expression)
            free_names = meta.find_undeclared_variables(
                self.environment.parse("{{ " + expression + " }}")
            )
            entry = (compiled, frozenset(free_names))
            self._compiled[expression] = entry
        return entry

    def _run(self, expression: str, names: Dict[str, Any]) -> Any:
        compiled, free_names = self._compile(expression)
        for name in sorted(free_names):
            if name not in names and name not in self.environment.globals:
                raise NameError(f"name '{name}' is not defined")
        return compiled(names)

    def evaluate(
        self,
        code: str,
        sandbox: Dict[str, Any],
        namespace: Dict[str, Any],
        context: Dict[str, Any],
    ) -> EvaluationOutcome:
        updated = dict(sandbox)
        names = dict(namespace)
        result = None

        for statement in split_statements(code):
            match = ASSIGNMENT_PATTERN.match(statement)
            if match:
                target, expression = match.group(1), match.group(2)
                result = self._run(expression, names)
                updated[target] = result
                names[target] = result
            else:
                result = self._run(statement, names)

        return EvaluationOutcome(updated, result)


class DirectStrategy(EvaluationStrategy):
    """Run command code as Python with the namespace as globals.

    The value of a trailing expression statement is the result; names bound
    by the code persist in the sandbox.
    """

    name = "direct"

    def evaluate(
        self,
        code: str,
        sandbox: Dict[str, Any],
        namespace: Dict[str, Any],
        context: Dict[str, Any],
    ) -> EvaluationOutcome:
        module = ast.parse(code, mode="exec")
        trailing: Optional[ast.expr] = None
        if module.body and isinstance(module.body[-1], ast.Expr):
            trailing = module.body.pop().value

        scope = dict(namespace)
        if module.body:
            exec(compile(module, "<command>", "exec"), scope)

        result = None
        if trailing is not None:
            expression = ast.fix_missing_locations(ast.Expression(body=trailing))
            result = eval(compile(expression, "<command>", "eval"), scope)

        return EvaluationOutcome(_changed_names(scope, namespace, sandbox), result)


class CustomStrategy(EvaluationStrategy):
    """Adapt a caller-supplied ``(sandbox, ctx) -> (sandbox, result)`` function.

    The function receives the full namespace with the code under ``__code__``
    and returns the modified namespace and the result.
    """

    name = "custom"

    def __init__(self, func: CustomEvaluator) -> None:
        self.func = func

    def evaluate(
        self,
        code: str,
        sandbox: Dict[str, Any],
        namespace: Dict[str, Any],
        context: Dict[str, Any],
    ) -> EvaluationOutcome:
        state = dict(namespace)
        state["__code__"] = code
        returned = self.func(state, context)

        if isinstance(returned, Mapping) and "result" in returned:
            modified = returned.get("modified_sandbox", state)
            result = returned["result"]
        elif isinstance(returned, tuple) and len(returned) == 2:
            modified, result = returned
        else:
            raise TypeError(
                "custom evaluator must return (modified_sandbox, result), "
                f"got {type(returned).__name__}"
            )

        if not isinstance(modified, Mapping):
            raise TypeError("custom evaluator returned a sandbox that is not a mapping")
        return EvaluationOutcome(_changed_names(modified, namespace, sandbox), result)


def create_strategy(config: EvaluationConfig) -> EvaluationStrategy:
    """Pick the strategy selected by the evaluation configuration."""
    if config.custom_evaluator is not None:
        return CustomStrategy(config.custom_evaluator)
    if config.no_sandbox:
        return DirectStrategy()
    return SandboxedStrategy()
