#!/usr/bin/env python3
"""
Command-line driver for refiner.

Builds a one-call test case for a Python function from typed argument values,
then refines every argument with local search until the budget runs out or a
full round over the arguments no longer improves line coverage.

Example:
    refiner mypkg.parsing:parse_header --arg str:GET --arg int:3 --budget 10
"""

from __future__ import annotations

import argparse
import importlib
import random
import sys
from pathlib import Path
from typing import Any, Callable

from refiner.budget import BudgetType, LocalSearchBudget
from refiner.config import DEFAULT_BUDGET_LIMIT, LOCAL_SEARCH_PROBES, LocalSearchConfig
from refiner.dispatcher import StatementDispatcher
from refiner.execution import TestExecutor
from refiner.health import HealthMonitor
from refiner.objective import CoverageFitness, DefaultObjective, ExceptionFitness
from refiner.telemetry import RefinementTelemetry
from refiner.testcase import PrimitiveStatement, TestCase, ValueKind
from refiner.utils import TeeLogger


def _parse_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValueError(f"Not a boolean: {text!r}")


def _parse_char(text: str) -> str:
    if len(text) != 1:
        raise ValueError(f"A char value must be exactly one character, got {text!r}")
    return text


KIND_PARSERS: dict[str, tuple[ValueKind, Callable[[str], Any]]] = {
    "str": (ValueKind.STRING, str),
    "int": (ValueKind.INTEGER, int),
    "float": (ValueKind.FLOAT, float),
    "bool": (ValueKind.BOOLEAN, _parse_bool),
    "char": (ValueKind.CHAR, _parse_char),
}


def parse_argument(argument: str) -> tuple[ValueKind, Any]:
    """Parse a KIND:VALUE command-line argument into a kind and a value."""
    kind_name, sep, text = argument.partition(":")
    if not sep:
        raise ValueError(f"Expected KIND:VALUE, got {argument!r}")
    if kind_name not in KIND_PARSERS:
        raise ValueError(
            f"Unknown kind {kind_name!r}; choose from {', '.join(KIND_PARSERS)}"
        )
    kind, parser = KIND_PARSERS[kind_name]
    return kind, parser(text)


def load_target(path: str) -> Callable[..., Any]:
    """Import MODULE:QUALNAME and return the callable it names."""
    module_name, sep, qualname = path.partition(":")
    if not sep or not module_name or not qualname:
        raise ValueError(f"Expected MODULE:FUNCTION, got {path!r}")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Could not import {module_name!r}: {e}") from e
    for attribute in qualname.split("."):
        try:
            target = getattr(target, attribute)
        except AttributeError as e:
            raise ValueError(f"{module_name!r} has no attribute {qualname!r}") from e
    if not callable(target):
        raise ValueError(f"{path!r} is not callable")
    return target


def build_test(target: Callable[..., Any], arguments: list[tuple[ValueKind, Any]]) -> TestCase:
    """Create a test case assigning each argument and calling `target` on them."""
    test = TestCase()
    indices = [test.add_primitive(kind, value) for kind, value in arguments]
    test.add_call(target, indices)
    return test


def run_refinement(
    test: TestCase,
    objective: DefaultObjective,
    dispatcher: StatementDispatcher,
    budget: LocalSearchBudget,
    telemetry: RefinementTelemetry | None = None,
) -> bool:
    """
    Refine every value statement of `test`, round after round.

    Stops when the budget is exhausted or a whole round brought no
    improvement. Returns True if any round improved fitness.
    """
    improved = False
    round_number = 0
    while not budget.is_finished():
        round_number += 1
        budget.count_local_search_on_test()
        print(f"[+] Refinement round {round_number}, fitness {objective.last_fitness}")
        round_improved = False
        for index, statement in enumerate(test.statements):
            if not isinstance(statement, PrimitiveStatement):
                continue
            if budget.is_finished():
                break
            statement_improved = dispatcher.search(test, index, objective)
            if telemetry is not None:
                telemetry.record_refinement(statement.kind.value, statement_improved)
            round_improved |= statement_improved
        if telemetry is not None:
            telemetry.log_timeseries_datapoint()
        if not round_improved:
            break
        improved = True
    return improved


def main() -> None:
    """Parse arguments and refine the inputs of a Python callable."""
    parser = argparse.ArgumentParser(
        description="Refine the arguments of a Python function for line coverage with local search."
    )
    parser.add_argument("target", help="The function to test, as MODULE:FUNCTION.")
    parser.add_argument(
        "--arg",
        dest="arguments",
        action="append",
        default=[],
        metavar="KIND:VALUE",
        help=f"An argument value; KIND is one of {', '.join(KIND_PARSERS)}. Repeatable.",
    )
    parser.add_argument(
        "--budget-type",
        choices=[t.value for t in BudgetType],
        default=BudgetType.TIME.value,
        help="Resource the budget is measured in (default: time).",
    )
    parser.add_argument(
        "--budget",
        type=float,
        default=DEFAULT_BUDGET_LIMIT,
        help=f"Budget limit in units of --budget-type (default: {DEFAULT_BUDGET_LIMIT}).",
    )
    parser.add_argument(
        "--probes",
        type=int,
        default=LOCAL_SEARCH_PROBES,
        help=f"Sensitivity probes per string (default: {LOCAL_SEARCH_PROBES}).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random generator.")
    parser.add_argument(
        "--maximize-crashes",
        action="store_true",
        help="Also reward inputs that make the target raise an exception.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Mirror output to this file.")
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress per-candidate detail lines in the log."
    )
    parser.add_argument(
        "--health-log", type=Path, default=None, help="JSONL file for health events."
    )
    parser.add_argument(
        "--timeseries-log", type=Path, default=None, help="JSONL file for telemetry datapoints."
    )
    args = parser.parse_args()

    if str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))

    try:
        target = load_target(args.target)
        arguments = [parse_argument(argument) for argument in args.arguments]
        config = LocalSearchConfig(probes=args.probes)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    original_stdout, original_stderr = sys.stdout, sys.stderr
    tee_logger = None
    if args.log_file is not None:
        tee_logger = TeeLogger(args.log_file, original_stdout, verbose=not args.quiet)
        sys.stdout = tee_logger
        sys.stderr = tee_logger

    try:
        budget = LocalSearchBudget(args.budget_type, args.budget)
        health_monitor = HealthMonitor(args.health_log) if args.health_log else None
        executor = TestExecutor(budget=budget, health_monitor=health_monitor)
        fitness_functions: list = [CoverageFitness(target)]
        if args.maximize_crashes:
            fitness_functions.append(ExceptionFitness())

        test = build_test(target, arguments)
        objective = DefaultObjective(test, fitness_functions, executor, budget=budget)
        dispatcher = StatementDispatcher(
            budget, random.Random(args.seed), config, health_monitor=health_monitor
        )
        telemetry = RefinementTelemetry(budget, timeseries_log_path=args.timeseries_log)

        initial_fitness = objective.last_fitness
        print(f"[+] Refining {args.target} with {len(arguments)} argument(s)")
        print(f"[+] Initial fitness: {initial_fitness}")
        run_refinement(test, objective, dispatcher, budget, telemetry)
        telemetry.update_and_save_run_stats()

        print(f"[+] Final fitness: {objective.last_fitness} (was {initial_fitness})")
        print(f"[+] Fitness evaluations: {objective.evaluations}")
        print("[+] Refined test:")
        print(test.to_code())
        if health_monitor is not None and health_monitor.counters:
            print(f"[+] Health events: {health_monitor.get_summary()}")
    finally:
        if tee_logger is not None:
            sys.stdout = original_stdout
            sys.stderr = original_stderr
            tee_logger.close()


if __name__ == "__main__":
    main()
