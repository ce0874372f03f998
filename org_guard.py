"""Deny-list checking: finds document blocks that mention forbidden organizations.

Documents are split into blank-line-delimited blocks; every block is checked
against a normalized deny-list by four interchangeable strategies, each timed
over its own full pass. aggregate() merges the passes into one sorted list of
unique violations.

Typical use:
    terms = TermSet.load("forbidden_orgs.txt")
    context = MatchContext.from_terms(terms)
    runs = run_all(["a.txt", "b.txt"], context)
    result = aggregate(runs)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Sequence

from org_automaton import Automaton

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConfigurationError(Exception):
    """The run cannot proceed: bad deny-list, bad config, or mismatched runs."""


class InputUnavailable(Exception):
    """A single document could not be read; the run continues without it."""

    def __init__(self, path: str, reason: str = "not found") -> None:
        super().__init__(f"file '{path}' {reason}.")
        self.path = path
        self.reason = reason


# ---------------------------------------------------------------------------
# Normalization and the deny-list
# ---------------------------------------------------------------------------


def normalize(line: str) -> str:
    return line.strip().lower()


def is_blank(line: str) -> bool:
    return not line.strip()


def read_lines(path: str) -> list[str]:
    """Read a UTF-8 text file (BOM optional), splitting on line breaks only."""
    with open(path, "r", encoding="utf-8-sig") as f:
        return f.read().split("\n")


@dataclass(frozen=True)
class TermSet:
    """Normalized deny-list terms, unique, in order of first appearance."""

    terms: tuple[str, ...] = ()

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "TermSet":
        unique: dict[str, None] = {}
        for line in lines:
            if is_blank(line):
                continue
            unique.setdefault(normalize(line), None)
        return cls(terms=tuple(unique))

    @classmethod
    def load(cls, path: str) -> "TermSet":
        try:
            lines = read_lines(path)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Deny-list file '{path}' not found.") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Deny-list file '{path}' could not be read: {e}") from e
        return cls.from_lines(lines)

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self) -> Iterator[str]:
        return iter(self.terms)


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Block:
    document: str
    number: int
    lines: tuple[str, ...]

    def normalized_lines(self) -> tuple[str, ...]:
        return tuple(normalize(line) for line in self.lines)


@dataclass(frozen=True)
class Segmentation:
    blocks: tuple[Block, ...]
    documents: tuple[str, ...]
    missing_documents: tuple[str, ...]
    next_number: int


def read_document(path: str) -> list[str]:
    try:
        return read_lines(path)
    except FileNotFoundError as e:
        raise InputUnavailable(path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise InputUnavailable(path, f"could not be read ({e})") from e


def iter_blocks(document: str, lines: Sequence[str], start: int = 1) -> Iterator[Block]:
    """Yield the non-empty blocks of one document, numbered from start."""
    number = start
    current: list[str] = []
    for line in lines:
        if not is_blank(line):
            current.append(line)
            continue
        if current:
            yield Block(document=document, number=number, lines=tuple(current))
            number += 1
            current = []
    if current:
        yield Block(document=document, number=number, lines=tuple(current))


def segment(
    documents: Sequence[str],
    reader: Callable[[str], list[str]] = read_document,
    start: int = 1,
) -> Segmentation:
    """Split documents, in the given order, into globally numbered blocks.

    Numbering continues across documents. Unreadable documents are reported
    with a warning and skipped.
    """
    blocks: list[Block] = []
    read: list[str] = []
    missing: list[str] = []
    number = start
    for document in documents:
        try:
            lines = reader(document)
        except InputUnavailable as e:
            print(f"Warning: {e}")
            missing.append(document)
            continue
        read.append(document)
        for block in iter_blocks(document, lines, number):
            blocks.append(block)
            number = block.number + 1
    return Segmentation(
        blocks=tuple(blocks),
        documents=tuple(read),
        missing_documents=tuple(missing),
        next_number=number,
    )


# ---------------------------------------------------------------------------
# Matching strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchContext:
    """Immutable matching state shared by every pass."""

    terms: tuple[str, ...]
    automaton: Automaton

    @classmethod
    def from_terms(cls, terms: TermSet | Iterable[str]) -> "MatchContext":
        frozen = tuple(terms)
        return cls(terms=frozen, automaton=Automaton.build(frozen))


def naive_substring(lines: Sequence[str], context: MatchContext) -> bool:
    for line in lines:
        for term in context.terms:
            if term in line:
                return True
    return False


def exact_line_set(lines: Sequence[str], context: MatchContext) -> bool:
    # Whole-line equality only: "acme corp services" does not match "acme corp".
    line_set = set(lines)
    for term in context.terms:
        if term in line_set:
            return True
    return False


def case_insensitive_substring(lines: Sequence[str], context: MatchContext) -> bool:
    for line in lines:
        folded = line.lower()
        for term in context.terms:
            if folded.find(term.lower()) >= 0:
                return True
    return False


def automaton_match(lines: Sequence[str], context: MatchContext) -> bool:
    automaton = context.automaton
    for line in lines:
        if automaton.contains_any(line):
            return True
    return False


MatcherPrototype = Callable[[Sequence[str], MatchContext], bool]


class Algorithm(Enum):
    NAIVE_SUBSTRING = (1, "Simple double loop (contains)")
    EXACT_LINE_SET = (2, "Hash set (exact lines)")
    CASE_INSENSITIVE_SUBSTRING = (3, "Case-insensitive find")
    AUTOMATON = (4, "Aho-Corasick automaton")

    def __init__(self, number: int, label: str) -> None:
        self.number = number
        self.label = label

    @property
    def matcher(self) -> MatcherPrototype:
        return _MATCHERS[self]


_MATCHERS: dict[Algorithm, MatcherPrototype] = {
    Algorithm.NAIVE_SUBSTRING: naive_substring,
    Algorithm.EXACT_LINE_SET: exact_line_set,
    Algorithm.CASE_INSENSITIVE_SUBSTRING: case_insensitive_substring,
    Algorithm.AUTOMATON: automaton_match,
}


# ---------------------------------------------------------------------------
# Benchmark harness
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Violation:
    document: str
    block_number: int
    lines: tuple[str, ...]

    @classmethod
    def from_block(cls, block: Block) -> "Violation":
        return cls(document=block.document, block_number=block.number, lines=block.lines)

    @property
    def key(self) -> tuple[str, int]:
        return (self.document, self.block_number)

    def to_payload(self) -> dict[str, object]:
        return {
            "document": self.document,
            "block_number": self.block_number,
            "lines": list(self.lines),
        }


@dataclass(frozen=True)
class AlgorithmRun:
    algorithm: Algorithm
    elapsed: float
    total_blocks: int
    violation_count: int
    violations: tuple[Violation, ...]
    documents: tuple[str, ...] = ()
    missing_documents: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.algorithm.label

    @property
    def number(self) -> int:
        return self.algorithm.number

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0

    @property
    def blocks_per_second(self) -> float:
        if self.total_blocks == 0 or self.elapsed <= 0:
            return 0.0
        return self.total_blocks / self.elapsed

    @property
    def ms_per_block(self) -> float:
        if self.total_blocks == 0:
            return 0.0
        return self.elapsed_ms / self.total_blocks


def run_algorithm(
    algorithm: Algorithm,
    documents: Sequence[str],
    context: MatchContext,
    reader: Callable[[str], list[str]] = read_document,
) -> AlgorithmRun:
    """Time one full pass: read and segment every document, then match every block."""
    matcher = algorithm.matcher
    violations: list[Violation] = []

    started = time.perf_counter()
    segmentation = segment(documents, reader)
    for block in segmentation.blocks:
        if matcher(block.normalized_lines(), context):
            violations.append(Violation.from_block(block))
    elapsed = time.perf_counter() - started

    return AlgorithmRun(
        algorithm=algorithm,
        elapsed=elapsed,
        total_blocks=len(segmentation.blocks),
        violation_count=len(violations),
        violations=tuple(violations),
        documents=segmentation.documents,
        missing_documents=segmentation.missing_documents,
    )


def run_all(
    documents: Sequence[str],
    context: MatchContext,
    algorithms: Iterable[Algorithm] = tuple(Algorithm),
    reader: Callable[[str], list[str]] = read_document,
    on_run: Callable[[AlgorithmRun], None] | None = None,
) -> list[AlgorithmRun]:
    runs = []
    for algorithm in algorithms:
        run = run_algorithm(algorithm, documents, context, reader)
        if on_run is not None:
            on_run(run)
        runs.append(run)
    return runs


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregateResult:
    violations: tuple[Violation, ...]
    total_blocks: int
    documents: tuple[str, ...]
    total_elapsed: float
    fastest: AlgorithmRun | None
    slowest: AlgorithmRun | None

    @property
    def unique_count(self) -> int:
        return len(self.violations)

    @property
    def violation_percent(self) -> float:
        if self.total_blocks == 0:
            return 0.0
        return self.unique_count / self.total_blocks * 100.0

    @property
    def speed_ratio(self) -> float:
        """Slowest elapsed time over fastest; 1.0 when nothing was measured."""
        if self.fastest is None or self.slowest is None:
            return 1.0
        if self.fastest.elapsed <= 0:
            return 1.0 if self.slowest.elapsed <= 0 else float("inf")
        return self.slowest.elapsed / self.fastest.elapsed


def _check_comparable(runs: Sequence[AlgorithmRun]) -> None:
    reference = runs[0]
    for run in runs[1:]:
        if run.documents != reference.documents or run.total_blocks != reference.total_blocks:
            raise ConfigurationError(
                f"Runs '{reference.name}' and '{run.name}' did not scan the same "
                f"document sequence; block numbers are not comparable."
            )


def aggregate(runs: Sequence[AlgorithmRun]) -> AggregateResult:
    """Merge violations of all runs, unique by (document, block number)."""
    if not runs:
        return AggregateResult(
            violations=(), total_blocks=0, documents=(),
            total_elapsed=0.0, fastest=None, slowest=None,
        )
    _check_comparable(runs)

    unique: dict[tuple[str, int], Violation] = {}
    for run in runs:
        for violation in run.violations:
            unique.setdefault(violation.key, violation)

    return AggregateResult(
        violations=tuple(sorted(unique.values(), key=lambda v: v.key)),
        total_blocks=runs[0].total_blocks,
        documents=runs[0].documents,
        total_elapsed=sum(r.elapsed for r in runs),
        fastest=min(runs, key=lambda r: r.elapsed),
        slowest=max(runs, key=lambda r: r.elapsed),
    )
