"""CLI entry point for the exercise compiler."""

import argparse
import logging
import random
import sys
from pathlib import Path

from twineproblems.algebra.bindings import Bindings
from twineproblems.algebra.machine import parse_expression
from twineproblems.config import Config, load_config
from twineproblems.errors import StructuralError
from twineproblems.exercise import load_exercise
from twineproblems.macros import MacroLibrary
from twineproblems.output import RENDERERS, get_renderer

logger = logging.getLogger(__name__)

INPUT_SUFFIXES = (".yaml", ".yml")


def _check_input(path: Path) -> None:
    if path.suffix not in INPUT_SUFFIXES:
        raise StructuralError(f"Input file {path} must have a .yaml or .yml extension")
    if not path.is_file():
        raise StructuralError(f"Input file {path} does not exist")


def _build(args: argparse.Namespace, config: Config) -> None:
    renderer = get_renderer(args.format or config.render.renderer)

    for name in args.inputs:
        path = Path(name)
        _check_input(path)
        exercise = load_exercise(path, config, extra_paths=args.include, rng=random.Random(config.seed))
        output = exercise.render(renderer, random.Random(config.seed), config)

        output_dir = Path(args.output or config.render.output_dir or path.parent)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = renderer.output_filename(output_dir, path)
        output_path.write_text(output, encoding="utf-8")
        print(f"{path} -> {output_path}")


def _check(args: argparse.Namespace, config: Config) -> None:
    for name in args.inputs:
        path = Path(name)
        _check_input(path)
        exercise = load_exercise(path, config, extra_paths=args.include, rng=random.Random(config.seed))
        tree = exercise.tree
        print(f"{path}: '{exercise.title}', {tree.count_nodes()} passages, {tree.count_endings()} endings")


def _eval(args: argparse.Namespace, config: Config) -> None:
    macros = MacroLibrary([Path.cwd(), *args.include])
    for name in args.macro_files:
        macros.load_file(macros.find(name))

    units = config.unit_table()
    expr = parse_expression(
        args.expression, macros, units=units, max_macro_depth=config.expression.max_macro_depth,
        tolerance=config.expression.tolerance,
    )
    value = expr.value(Bindings(tolerance=config.expression.tolerance), random.Random(config.seed))
    print(expr.show(units))
    print(value.display(units))


def main(argv: list[str] | None = None) -> None:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    common.add_argument("-c", "--config", type=Path, default=None, help="Config file (default ./twineproblems.yaml)")
    common.add_argument("--seed", type=int, default=None, help="Random seed, overrides the config")
    common.add_argument(
        "-I", "--include", action="append", type=Path, default=[],
        help="Extra directory to search for macro files (repeatable)",
    )

    parser = argparse.ArgumentParser(description="Compile YAML problem descriptions into interactive stories")
    sub = parser.add_subparsers(dest="command")

    # build command
    build_parser = sub.add_parser("build", parents=[common], help="Render exercises to output files")
    build_parser.add_argument("inputs", nargs="+", help="Exercise YAML files")
    build_parser.add_argument("-o", "--output", default=None, help="Output directory (default: next to the input)")
    build_parser.add_argument("-f", "--format", choices=sorted(RENDERERS), default=None, help="Output format")

    # check command
    check_parser = sub.add_parser("check", parents=[common], help="Compile exercises and report their size")
    check_parser.add_argument("inputs", nargs="+", help="Exercise YAML files")

    # eval command
    eval_parser = sub.add_parser("eval", parents=[common], help="Evaluate a postfix formula")
    eval_parser.add_argument("expression", help="Formula text, e.g. '2mA 1kohm * V :'")
    eval_parser.add_argument(
        "-m", "--macros", dest="macro_files", action="append", default=[],
        help="Macro file to load (repeatable)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        if args.seed is not None:
            config.seed = args.seed
        logger.debug("Config: %s", config)
        if args.command == "build":
            _build(args, config)
        elif args.command == "check":
            _check(args, config)
        elif args.command == "eval":
            _eval(args, config)
    except ValueError as exc:  # CompileError, invalid config or renderer name
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
