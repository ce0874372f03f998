#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Reporting for deny-list check runs

Turns the AlgorithmRun list and the aggregated result from org_guard into
console tables, a pandas DataFrame (saved as CSV), a markdown report of the
flagged blocks and an optional timing plot.

Dependencies:
    pandas
    numpy
    matplotlib
    seaborn
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from org_guard import AggregateResult, AlgorithmRun


def format_time(milliseconds: float) -> str:
    """Render a duration the way the console tables show it."""
    if milliseconds < 1000:
        return f"{milliseconds:.0f} ms"
    if milliseconds < 60000:
        return f"{milliseconds / 1000.0:.2f} s"
    return f"{milliseconds / 60000.0:.2f} min"


def truncate(text: str, max_length: int) -> str:
    if not text or len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def print_header(text: str):
    print("=" * 60)
    print(f"  {text}")
    print("=" * 60)


def print_success(message: str):
    print(f"✓ {message}")


def print_error(message: str):
    print(f"✗ {message}")


def term_statistics(terms: Sequence[str]) -> Dict[str, float]:
    """Count and length statistics of the deny-list (zeros for an empty list)."""
    if not terms:
        return {'term_count': 0, 'avg_length': 0.0, 'min_length': 0, 'max_length': 0}

    lengths = np.array([len(t) for t in terms])
    return {
        'term_count': len(terms),
        'avg_length': float(np.mean(lengths)),
        'min_length': int(np.min(lengths)),
        'max_length': int(np.max(lengths)),
    }


def print_term_statistics(terms: Sequence[str]) -> Dict[str, float]:
    stats = term_statistics(terms)

    print_header("DENY-LIST STATISTICS")
    print(f"  {'Terms':>20}: {stats['term_count']:,}")
    print(f"  {'Average length':>20}: {stats['avg_length']:.1f} characters")
    print(f"  {'Minimum length':>20}: {stats['min_length']} characters")
    print(f"  {'Maximum length':>20}: {stats['max_length']} characters")
    print()

    return stats


def print_run_progress(run: AlgorithmRun):
    """One line per finished pass; used as the harness callback."""
    print(f"[{run.number}] {run.name}... ✓ done "
          f"(violations: {run.violation_count:,}, time: {format_time(run.elapsed_ms)})")
    for document in run.missing_documents:
        print(f"    skipped: {document}")


def runs_to_dataframe(runs: Sequence[AlgorithmRun]) -> pd.DataFrame:
    """One row per algorithm pass, ordered by algorithm number."""
    data = []
    for run in runs:
        data.append({
            'number': run.number,
            'algorithm': run.name,
            'elapsed_ms': run.elapsed_ms,
            'total_blocks': run.total_blocks,
            'violations': run.violation_count,
            'blocks_per_second': run.blocks_per_second,
            'ms_per_block': run.ms_per_block,
            'documents_read': len(run.documents),
            'documents_missing': len(run.missing_documents),
        })

    columns = ['number', 'algorithm', 'elapsed_ms', 'total_blocks', 'violations',
               'blocks_per_second', 'ms_per_block', 'documents_read', 'documents_missing']
    df = pd.DataFrame(data, columns=columns)
    if len(df) > 0:
        df = df.sort_values('number').reset_index(drop=True)
    return df


def print_results_table(df: pd.DataFrame):
    """Per-algorithm timing table; the fastest and slowest rows are marked."""
    print_header("ALGORITHM RESULTS")
    print(f"  {'#':<3} {'Algorithm':<30} {'Time':>12} {'Violations':>12} "
          f"{'Blocks/s':>12} {'ms/block':>10}")
    print(f"  {'-'*3} {'-'*30} {'-'*12} {'-'*12} {'-'*12} {'-'*10}")

    if len(df) == 0:
        print("  (no runs)")
        print()
        return

    fastest = df['elapsed_ms'].min()
    slowest = df['elapsed_ms'].max()

    for _, row in df.iterrows():
        marker = ""
        if len(df) > 1 and row['elapsed_ms'] == fastest:
            marker = "  <- fastest"
        elif len(df) > 1 and row['elapsed_ms'] == slowest:
            marker = "  <- slowest"
        print(f"  {row['number']:<3} {truncate(row['algorithm'], 30):<30} "
              f"{format_time(row['elapsed_ms']):>12} {row['violations']:>12,} "
              f"{row['blocks_per_second']:>12.0f} {row['ms_per_block']:>10.3f}{marker}")
    print()


def print_violations(result: AggregateResult):
    """List every unique flagged block, grouped by document."""
    print_header("BLOCKS MENTIONING FORBIDDEN ORGANIZATIONS")

    if not result.violations:
        print_success("No forbidden organizations found in any block.")
        print()
        return

    print(f"Total unique blocks with violations: {result.unique_count:,}\n")

    current_document = None
    for violation in result.violations:
        if violation.document != current_document:
            current_document = violation.document
            print(f"Document: {current_document}")
        print(f"Block #{violation.block_number}:")
        for line in violation.lines:
            print(f"  • {line}")
        print()


def summary_statistics(result: AggregateResult, runs: Sequence[AlgorithmRun]) -> Dict[str, Any]:
    """Figures for the final statistics table."""
    stats: Dict[str, Any] = {
        'documents_processed': len(result.documents),
        'total_blocks': result.total_blocks,
        'unique_violations': result.unique_count,
        'violation_percent': result.violation_percent,
        'total_time_ms': result.total_elapsed * 1000.0,
        'fastest': result.fastest.name if result.fastest else None,
        'fastest_ms': result.fastest.elapsed_ms if result.fastest else 0.0,
        'slowest': result.slowest.name if result.slowest else None,
        'slowest_ms': result.slowest.elapsed_ms if result.slowest else 0.0,
        'speed_ratio': result.speed_ratio,
    }
    stats['per_algorithm'] = [
        {'number': r.number, 'algorithm': r.name,
         'elapsed_ms': r.elapsed_ms, 'violations': r.violation_count}
        for r in sorted(runs, key=lambda r: r.number)
    ]
    return stats


def print_final_statistics(result: AggregateResult, runs: Sequence[AlgorithmRun]) -> Dict[str, Any]:
    stats = summary_statistics(result, runs)

    print_header("FINAL STATISTICS")
    rows = [
        ("Documents processed", f"{stats['documents_processed']}"),
        ("Total blocks checked", f"{stats['total_blocks']:,}"),
        ("Unique blocks with violations", f"{stats['unique_violations']:,}"),
        ("Share of blocks with violations", f"{stats['violation_percent']:.2f} %"),
        ("Total time of all algorithms", format_time(stats['total_time_ms'])),
    ]
    if stats['fastest'] is not None:
        rows += [
            ("Fastest algorithm", truncate(stats['fastest'], 40)),
            ("Fastest time", format_time(stats['fastest_ms'])),
            ("Slowest algorithm", truncate(stats['slowest'], 40)),
            ("Slowest time", format_time(stats['slowest_ms'])),
            ("Speed ratio (slowest / fastest)", f"{stats['speed_ratio']:.1f}x"),
        ]
    for label, value in rows:
        print(f"  {label:<45} {value:>32}")

    print(f"  {'-'*45} {'-'*32}")
    for entry in stats['per_algorithm']:
        label = f"{entry['number']}. {truncate(entry['algorithm'], 35)} - time"
        print(f"  {label:<45} {format_time(entry['elapsed_ms']):>32}")
        print(f"  {'   - violations found':<45} {entry['violations']:>32,}")
    print("=" * 60)
    print()

    return stats


def save_runs_csv(df: pd.DataFrame, filename: Optional[str] = None) -> str:
    if filename is None:
        filename = f"org_check_runs_{time.strftime('%Y%m%d_%H%M%S')}.csv"
    df.to_csv(filename, index=False)
    print(f"Run table saved to: {filename}")
    return filename


def plot_run_times(df: pd.DataFrame, filename: str = 'algorithm_times.png') -> str:
    """Bar chart of elapsed time per algorithm."""
    plt.figure(figsize=(10, 6))
    sns.barplot(x='algorithm', y='elapsed_ms', data=df, color='steelblue')
    plt.title('Elapsed Time per Algorithm')
    plt.xlabel('Algorithm')
    plt.ylabel('Elapsed time (ms)')
    plt.xticks(rotation=15)

    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"Saved timing plot to {filename}")
    return filename


def generate_violations_report(result: AggregateResult, runs: Sequence[AlgorithmRun],
                               filename: Optional[str] = None) -> str:
    """Write a markdown report of the flagged blocks and the algorithm timings."""
    if filename is None:
        filename = f"org_check_report_{time.strftime('%Y%m%d_%H%M%S')}.md"

    lines: List[str] = [
        "# Forbidden Organizations Report",
        "",
        f"Generated: {time.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "## Summary",
        "",
        f"- Documents processed: {len(result.documents)}",
        f"- Blocks checked: {result.total_blocks:,}",
        f"- Unique blocks with violations: {result.unique_count:,} "
        f"({result.violation_percent:.2f} %)",
        "",
        "## Algorithms",
        "",
        "| # | Algorithm | Time | Violations |",
        "|---|-----------|------|------------|",
    ]
    for run in sorted(runs, key=lambda r: r.number):
        lines.append(f"| {run.number} | {run.name} | {format_time(run.elapsed_ms)} "
                     f"| {run.violation_count:,} |")
    lines.append("")
    lines.append("The hash set strategy only flags a block when a whole line equals a "
                 "deny-list entry, so it can report fewer blocks than the others.")
    lines.append("")

    lines.append("## Flagged Blocks")
    lines.append("")
    if not result.violations:
        lines.append("*(no violations found)*")
        lines.append("")

    current_document = None
    for violation in result.violations:
        if violation.document != current_document:
            current_document = violation.document
            lines.append(f"### {current_document}")
            lines.append("")
        lines.append(f"**Block #{violation.block_number}**")
        lines.append("")
        lines.append("```")
        lines.extend(violation.lines)
        lines.append("```")
        lines.append("")

    lines.append("---")
    lines.append("")
    lines.append("*Report generated by analyze_runs.py*")

    with open(filename, 'w', encoding='utf-8') as f:
        f.write("\n".join(lines) + "\n")

    print(f"Violations report saved to: {filename}")
    return filename
