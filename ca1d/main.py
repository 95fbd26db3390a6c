#!/usr/bin/env python3
"""CLI for running and inspecting 1D cellular automata."""

import argparse
import sys
from typing import Tuple

import numpy as np

from .automaton import DEFAULT_NEIGHBOURHOOD, DIGITS, CellularAutomaton, Rule
from .errors import CellularAutomatonError, InvalidRule
from .metrics import evaluate_rule
from .render import DEFAULT_SYMBOLS, display_history, render_state, visualize_rule


def positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def parse_offsets(text: str) -> Tuple[int, ...]:
    """Parse a neighbourhood like '-1,0,1'."""
    try:
        return tuple(int(part) for part in text.split(",") if part.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid neighbourhood '{text}', expected e.g. -1,0,1")


def parse_table(text: str, num_states: int) -> Tuple[int, ...]:
    """Parse a rule table written as base-k digits ('01111000') or comma separated values."""
    if "," in text:
        try:
            return tuple(int(part) for part in text.split(","))
        except ValueError:
            raise InvalidRule(f"invalid rule table '{text}'")
    values = []
    for char in text.lower():
        if char not in DIGITS[:num_states]:
            raise InvalidRule(f"'{char}' is not a digit in base {num_states}")
        values.append(DIGITS.index(char))
    return tuple(values)


def build_rule(args) -> Rule:
    """Build the rule selected on the command line, defaulting to Wolfram rule 30."""
    if args.table is not None:
        return Rule.from_table(args.neighbourhood, args.states, parse_table(args.table, args.states))
    if args.rule is not None:
        return Rule.from_decimal(args.neighbourhood, args.states, args.rule)
    code = 30 if args.wolfram is None else args.wolfram
    return Rule.from_wolfram(code, args.neighbourhood, args.states)


def build_automaton(rule: Rule, args) -> CellularAutomaton:
    ca = CellularAutomaton(rule, width=args.width)
    if args.init == "random":
        ca.randomize(np.random.default_rng(args.seed))
    else:
        ca.seed_center()
    return ca


def describe(rule: Rule) -> str:
    offsets = ",".join(str(o) for o in rule.neighbourhood)
    return f"Rule {rule.to_decimal()} (Wolfram {rule.to_wolfram()}), {rule.num_states} states, neighbourhood [{offsets}]"


def cmd_run(args):
    """Print the evolution of a rule, one generation per line."""
    rule = build_rule(args)
    ca = build_automaton(rule, args)

    print(describe(rule))
    history = [ca.state]
    print(render_state(ca.state, args.symbols, rule.num_states))
    for _ in range(args.generations):
        history.append(ca.step())
        print(render_state(history[-1], args.symbols, rule.num_states))

    if args.show:
        display_history(history, title=describe(rule))


def cmd_info(args):
    """Show the encodings of a rule."""
    rule = build_rule(args)

    print(describe(rule))
    print(f"  Rule identifier:  {rule.to_decimal()}")
    print(f"  Wolfram code:     {rule.to_wolfram()}")
    print(f"  Table (base {rule.num_states}):  {rule.to_string()}")
    print(f"  Configurations:   {rule.size}")
    print(f"  Possible rules:   {rule.rule_count}")
    print(f"  Lambda parameter: {rule.lambda_parameter():.4f}")


def cmd_image(args):
    """Save a space-time diagram of a rule."""
    rule = build_rule(args)

    print(f"Visualizing {describe(rule)}")
    print(f"  Width: {args.width}")
    print(f"  Generations: {args.generations}")

    image_path = visualize_rule(
        rule,
        width=args.width,
        steps=args.generations,
        output_dir=args.output,
        init=args.init,
        cell_size=args.cell_size,
        seed=args.seed,
    )
    print(f"\nSaved: {image_path}")


def cmd_evaluate(args):
    """Evaluate a rule and show metrics."""
    rule = build_rule(args)

    print(f"Evaluating {describe(rule)}")
    print(f"  Width: {args.width}")
    print(f"  Generations: {args.generations}")
    print(f"  Trials: {args.trials}")
    print()

    metrics = evaluate_rule(
        rule,
        width=args.width,
        steps=args.generations,
        num_trials=args.trials,
        rng=np.random.default_rng(args.seed),
        verbose=args.verbose,
    )

    print("Metrics:")
    print(f"  Lambda parameter:      {metrics.lambda_param:.4f}")
    print(f"  Spatial entropy:       {metrics.spatial_entropy:.4f}")
    print(f"  Temporal entropy:      {metrics.temporal_entropy:.4f}")
    print(f"  Compression ratio:     {metrics.compression_ratio:.4f}")
    print(f"  Cluster count:         {metrics.cluster_count:.2f}")
    print(f"  Activity persistence:  {metrics.activity_persistence:.4f}")
    print(f"  Final density:         {metrics.final_density:.4f}")


def cmd_sweep(args):
    """Run consecutive rule identifiers from the same initial state."""
    size = args.states ** len(args.neighbourhood)
    rule_count = args.states ** size
    stop = min(args.start + args.count, rule_count)

    for decimal in range(args.start, stop):
        rule = Rule.from_decimal(args.neighbourhood, args.states, decimal)
        ca = build_automaton(rule, args)
        print(f"Rule: {decimal}")
        for state in ca.run(args.generations):
            print(render_state(state, args.symbols, rule.num_states))
        print()


def add_automaton_arguments(parser: argparse.ArgumentParser, generations: int = 73):
    parser.add_argument("-k", "--states", type=int, default=2, help="Number of cell states")
    parser.add_argument(
        "--neighbourhood", type=parse_offsets, default=DEFAULT_NEIGHBOURHOOD,
        help="Comma separated offsets, e.g. --neighbourhood=-2,0,2",
    )
    parser.add_argument("--width", type=int, default=145, help="Number of cells in the ring")
    parser.add_argument("--generations", type=int, default=generations, help="Generations to run")
    parser.add_argument("--init", choices=["center", "random"], default="center", help="Initial state")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")


def add_rule_arguments(parser: argparse.ArgumentParser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-r", "--rule", type=int, default=None, help="Rule identifier (table read first entry first)")
    group.add_argument("-w", "--wolfram", type=int, default=None, help="Wolfram code (default 30)")
    group.add_argument("-t", "--table", type=str, default=None, help="Rule table as base-k digits, e.g. 01111000")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="ca1d - Run one-dimensional cellular automata with any neighbourhood and state count"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Print the evolution of a rule")
    add_rule_arguments(run_parser)
    add_automaton_arguments(run_parser)
    run_parser.add_argument("-s", "--symbols", type=str, default=DEFAULT_SYMBOLS, help="Symbol for each state")
    run_parser.add_argument("--show", action="store_true", help="Also display the run with matplotlib")
    run_parser.set_defaults(func=cmd_run)

    # Info command
    info_parser = subparsers.add_parser("info", help="Show the encodings of a rule")
    add_rule_arguments(info_parser)
    info_parser.add_argument("-k", "--states", type=int, default=2, help="Number of cell states")
    info_parser.add_argument("--neighbourhood", type=parse_offsets, default=DEFAULT_NEIGHBOURHOOD,
                             help="Comma separated offsets")
    info_parser.set_defaults(func=cmd_info)

    # Image command
    image_parser = subparsers.add_parser("image", help="Save a space-time diagram as PNG")
    add_rule_arguments(image_parser)
    add_automaton_arguments(image_parser)
    image_parser.add_argument("--cell-size", type=int, default=4, help="Cell size in pixels")
    image_parser.add_argument("-o", "--output", type=str, default="output", help="Output directory")
    image_parser.set_defaults(func=cmd_image)

    # Evaluate command
    eval_parser = subparsers.add_parser("evaluate", help="Measure a rule from random initial states")
    add_rule_arguments(eval_parser)
    add_automaton_arguments(eval_parser, generations=100)
    eval_parser.add_argument("--trials", type=positive_int, default=3, help="Number of trials to average")
    eval_parser.add_argument("-v", "--verbose", action="store_true", help="Print each trial")
    eval_parser.set_defaults(func=cmd_evaluate)

    # Sweep command
    sweep_parser = subparsers.add_parser("sweep", help="Run consecutive rule identifiers")
    add_automaton_arguments(sweep_parser, generations=20)
    sweep_parser.add_argument("--start", type=int, default=0, help="First rule identifier")
    sweep_parser.add_argument("-n", "--count", type=int, default=10, help="Number of rules to run")
    sweep_parser.add_argument("-s", "--symbols", type=str, default=DEFAULT_SYMBOLS, help="Symbol for each state")
    sweep_parser.set_defaults(func=cmd_sweep)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except CellularAutomatonError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
