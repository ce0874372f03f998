"""Multi-pattern substring matching (Aho-Corasick) for deny-list terms.

Single entry point: Automaton.build(terms) returns a frozen automaton whose
scan(text) yields every term occurrence in one left-to-right pass.
States live in flat tables indexed by integer id; state 0 is the root.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator

ROOT = 0


@dataclass(frozen=True)
class Occurrence:
    term: str
    term_id: int
    start: int
    end: int


class Automaton:
    """Trie with failure links over a frozen set of terms.

    Built once, never mutated afterwards; a single instance can be shared by
    any number of scans.
    """

    __slots__ = ("_terms", "_goto", "_fail", "_outputs")

    def __init__(
        self,
        terms: tuple[str, ...],
        goto: tuple[dict[str, int], ...],
        fail: tuple[int, ...],
        outputs: tuple[tuple[int, ...], ...],
    ) -> None:
        self._terms = terms
        self._goto = goto
        self._fail = fail
        self._outputs = outputs

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def build(cls, terms: Iterable[str]) -> "Automaton":
        """Build the automaton; cost is linear in the total length of terms.

        Empty strings and repeated terms are ignored, so term ids follow the
        order of first occurrence.
        """
        unique: list[str] = []
        seen: set[str] = set()
        for term in terms:
            if term and term not in seen:
                seen.add(term)
                unique.append(term)

        goto: list[dict[str, int]] = [{}]
        outputs: list[list[int]] = [[]]

        for term_id, term in enumerate(unique):
            state = ROOT
            for ch in term:
                nxt = goto[state].get(ch)
                if nxt is None:
                    nxt = len(goto)
                    goto[state][ch] = nxt
                    goto.append({})
                    outputs.append([])
                state = nxt
            outputs[state].append(term_id)

        fail = [ROOT] * len(goto)
        queue: deque[int] = deque(goto[ROOT].values())

        # BFS guarantees a state's fail target is finalized before its children
        while queue:
            state = queue.popleft()
            for ch, child in goto[state].items():
                queue.append(child)
                fallback = fail[state]
                while fallback != ROOT and ch not in goto[fallback]:
                    fallback = fail[fallback]
                target = goto[fallback].get(ch, ROOT)
                fail[child] = target
                # suffix terms recognized at the fail target end here too
                outputs[child].extend(outputs[target])

        return cls(
            terms=tuple(unique),
            goto=tuple(goto),
            fail=tuple(fail),
            outputs=tuple(tuple(out) for out in outputs),
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def terms(self) -> tuple[str, ...]:
        return self._terms

    @property
    def state_count(self) -> int:
        return len(self._goto)

    def __len__(self) -> int:
        return len(self._terms)

    def __repr__(self) -> str:
        return f"Automaton(terms={len(self._terms)}, states={len(self._goto)})"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _step(self, state: int, ch: str) -> int:
        goto = self._goto
        fail = self._fail
        while state != ROOT and ch not in goto[state]:
            state = fail[state]
        return goto[state].get(ch, ROOT)

    def scan(self, text: str) -> Iterator[Occurrence]:
        """Yield every occurrence of every term in text, ordered by end offset.

        Terms that are suffixes of one another are reported independently.
        """
        state = ROOT
        for idx, ch in enumerate(text):
            state = self._step(state, ch)
            for term_id in self._outputs[state]:
                term = self._terms[term_id]
                yield Occurrence(
                    term=term,
                    term_id=term_id,
                    start=idx - len(term) + 1,
                    end=idx + 1,
                )

    def find_all(self, text: str) -> list[Occurrence]:
        return list(self.scan(text))

    def contains_any(self, text: str) -> bool:
        """True as soon as any term occurs in text."""
        state = ROOT
        outputs = self._outputs
        for ch in text:
            state = self._step(state, ch)
            if outputs[state]:
                return True
        return False
