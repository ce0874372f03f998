#!/usr/bin/env python3
"""
Forbidden organization checker

Scans blank-line-delimited blocks of the input documents for any entry of a
deny-list, once per matching algorithm, and reports timings plus the unique
flagged blocks. Console output is mirrored to a timestamped log file.

Usage:
    uv run check_documents.py --config check_config.yaml
    uv run check_documents.py --deny-list forbidden_orgs.txt docs/a.txt docs/b.txt

Dependencies:
    pyyaml, pandas, numpy, matplotlib, seaborn
    (same as analyze_runs.py)
"""

import argparse
import contextlib
import os
import sys
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

import yaml

from analyze_runs import (
    generate_violations_report,
    plot_run_times,
    print_error,
    print_final_statistics,
    print_header,
    print_results_table,
    print_run_progress,
    print_success,
    print_term_statistics,
    print_violations,
    runs_to_dataframe,
    save_runs_csv,
)
from org_guard import (
    AggregateResult,
    AlgorithmRun,
    ConfigurationError,
    MatchContext,
    TermSet,
    aggregate,
    run_all,
)


DEFAULT_DENY_LIST = "forbidden_orgs.txt"
LOG_FILE_PREFIX = "forbidden_orgs_log_"


@dataclass(frozen=True)
class CheckSettings:
    """Everything one check run needs, after defaults, env vars and config are merged."""

    deny_list: str = DEFAULT_DENY_LIST
    documents: Tuple[str, ...] = ()
    log_dir: str = "."
    write_log: bool = True
    write_csv: bool = True
    write_report: bool = True
    plot: bool = False
    show_violations: bool = True
    output_dir: str = "."
    source: Optional[str] = field(default=None, compare=False)


def load_config(config_path: str) -> Dict[str, Any]:
    """Load check configuration from a YAML file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            cfg = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file '{config_path}' not found.") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file '{config_path}' is not valid YAML: {e}") from e
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Config file '{config_path}' must contain a mapping.")
    return cfg


def settings_from_env(environ=None) -> CheckSettings:
    environ = os.environ if environ is None else environ
    settings = CheckSettings()

    if environ.get("ORG_DENY_LIST"):
        settings = replace(settings, deny_list=environ["ORG_DENY_LIST"])
    if environ.get("ORG_DOCUMENTS"):
        documents = [p for p in environ["ORG_DOCUMENTS"].split(os.pathsep) if p]
        settings = replace(settings, documents=tuple(documents))
    if environ.get("ORG_LOG_DIR"):
        settings = replace(settings, log_dir=environ["ORG_LOG_DIR"])
    return settings


def apply_config(settings: CheckSettings, cfg: Dict[str, Any], source: Optional[str] = None) -> CheckSettings:
    """Overlay a parsed config mapping onto settings."""
    updates: Dict[str, Any] = {}

    if 'deny_list' in cfg:
        updates['deny_list'] = str(cfg['deny_list'])
    if 'documents' in cfg:
        documents = cfg['documents'] or []
        if not isinstance(documents, list):
            raise ConfigurationError("'documents' must be a list of file paths")
        updates['documents'] = tuple(str(d) for d in documents)

    output_cfg = cfg.get('output', {}) or {}
    if not isinstance(output_cfg, dict):
        raise ConfigurationError("'output' must be a mapping")
    for key, attr in (('log_dir', 'log_dir'), ('dir', 'output_dir')):
        if key in output_cfg:
            updates[attr] = str(output_cfg[key])
    for key, attr in (('log', 'write_log'), ('csv', 'write_csv'), ('report', 'write_report'),
                      ('plot', 'plot'), ('show_violations', 'show_violations')):
        if key in output_cfg:
            updates[attr] = bool(output_cfg[key])

    if source is not None:
        updates['source'] = source
    return replace(settings, **updates)


def apply_args(settings: CheckSettings, args: argparse.Namespace) -> CheckSettings:
    updates: Dict[str, Any] = {}
    if args.deny_list:
        updates['deny_list'] = args.deny_list
    if args.documents:
        updates['documents'] = tuple(args.documents)
    if args.no_log:
        updates['write_log'] = False
    if args.plot:
        updates['plot'] = True
    if args.output_dir:
        updates['output_dir'] = args.output_dir
    return replace(settings, **updates)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check documents for forbidden organizations")
    parser.add_argument("documents", nargs="*",
                        help="Document files to check, in processing order")
    parser.add_argument("--config", "-c", type=str, default=None,
                        help="Path to YAML config file")
    parser.add_argument("--deny-list", "-d", type=str, default=None,
                        help=f"Deny-list file, one organization per line (default: {DEFAULT_DENY_LIST})")
    parser.add_argument("--output-dir", "-o", type=str, default=None,
                        help="Directory for the CSV, report and plot")
    parser.add_argument("--no-log", action="store_true",
                        help="Do not mirror console output to a log file")
    parser.add_argument("--plot", action="store_true",
                        help="Save a bar chart of algorithm timings")
    return parser


def resolve_settings(argv: Optional[List[str]] = None, environ=None) -> CheckSettings:
    """Defaults < environment < config file < command line."""
    args = build_parser().parse_args(argv)
    settings = settings_from_env(environ)
    if args.config:
        settings = apply_config(settings, load_config(args.config), source=args.config)
    return apply_args(settings, args)


# ------------------------------------------------------------------
# Console mirroring
# ------------------------------------------------------------------
class TeeWriter:
    """File-like object writing to the console and a log file at once."""

    def __init__(self, console, log_file):
        self.console = console
        self.log_file = log_file

    @property
    def encoding(self):
        return getattr(self.console, 'encoding', 'utf-8')

    def write(self, text: str) -> int:
        self.console.write(text)
        self.log_file.write(text)
        self.log_file.flush()
        return len(text)

    def flush(self):
        self.console.flush()
        self.log_file.flush()

    def isatty(self) -> bool:
        return False


def log_filename(log_dir: str) -> str:
    return os.path.join(log_dir, f"{LOG_FILE_PREFIX}{time.strftime('%Y-%m-%d_%H-%M-%S')}.txt")


@contextlib.contextmanager
def mirrored_output(log_path: Optional[str]):
    """Duplicate everything printed inside the block into log_path (if given)."""
    if log_path is None:
        yield None
        return

    directory = os.path.dirname(log_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(log_path, 'w', encoding='utf-8') as log_file:
        tee = TeeWriter(sys.stdout, log_file)
        with contextlib.redirect_stdout(tee):
            yield log_path


# ------------------------------------------------------------------
# Run
# ------------------------------------------------------------------
def check(settings: CheckSettings) -> Tuple[List[AlgorithmRun], AggregateResult]:
    """Load the deny-list, run every algorithm and print the console report."""
    print_header("FORBIDDEN ORGANIZATIONS CHECKER")
    if settings.source:
        print(f"Loaded config from: {settings.source}")
    print()

    print("Loading deny-list... ", end="")
    terms = TermSet.load(settings.deny_list)
    print_success(f"Loaded {len(terms)} organizations")

    print("Building Aho-Corasick automaton... ", end="")
    context = MatchContext.from_terms(terms)
    print_success(f"Done ({context.automaton.state_count} states)")
    print()

    print_term_statistics(terms.terms)

    print_header("RUNNING CHECK ALGORITHMS")
    if not settings.documents:
        print("Warning: no documents configured; every algorithm will see zero blocks.")
    runs = run_all(settings.documents, context, on_run=print_run_progress)
    print()

    df = runs_to_dataframe(runs)
    print_results_table(df)

    result = aggregate(runs)
    if settings.show_violations:
        print_violations(result)
    print_final_statistics(result, runs)

    if settings.write_csv or settings.write_report or settings.plot:
        os.makedirs(settings.output_dir, exist_ok=True)
    suffix = time.strftime('%Y%m%d_%H%M%S')
    if settings.write_csv:
        save_runs_csv(df, os.path.join(settings.output_dir, f"org_check_runs_{suffix}.csv"))
    if settings.write_report:
        generate_violations_report(
            result, runs, os.path.join(settings.output_dir, f"org_check_report_{suffix}.md"))
    if settings.plot and len(df) > 0:
        plot_run_times(df, os.path.join(settings.output_dir, f"org_check_times_{suffix}.png"))

    return runs, result


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the check; returns the process exit code."""
    try:
        settings = resolve_settings(argv)
    except ConfigurationError as e:
        print_error(str(e))
        return 1

    log_path = log_filename(settings.log_dir) if settings.write_log else None
    with mirrored_output(log_path):
        try:
            check(settings)
        except ConfigurationError as e:
            print_error(str(e))
            return 1

        print("=" * 60)
        if log_path:
            print(f"Log saved to: {log_path}")
        print("Check complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
