# src/brainpipe/engine/merge.py
"""Merge strategies for reconciling concurrent writers and combining records.

Two places need reconciliation:

1. merge_outcomes(): several 1:1 operations ran concurrently over the same
   input record. The merged record is the input minus every key any
   operation removed, plus each operation's declared writes reconciled by
   strategy:

   - last_in:  latest completion wins
   - first_in: earliest completion wins
   - collate:  a key written by two or more operations becomes a list, in
               declaration order
   - disjoint: overlapping writers are rejected when the stage is built,
               so at runtime every key has at most one writer

2. merge_records(): legacy "merge" stages combine their whole input array
   into one record before running operations:

   - last_in:  later records win
   - first_in: earlier records win
   - collate:  differing values for one key become a list, in record order
   - disjoint: one key with differing values in two records is an error

last_in/first_in over concurrent operations depend on completion order
and are therefore non-deterministic when two operations write one key.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from brainpipe.contracts.errors import ExecutionError
from brainpipe.contracts.record import Record


class MergeStrategy(StrEnum):
    LAST_IN = "last_in"
    FIRST_IN = "first_in"
    COLLATE = "collate"
    DISJOINT = "disjoint"


@dataclass(frozen=True, slots=True)
class WriterOutput:
    """One operation's output record at one index.

    Attributes:
        record: The operation's output record
        writes: Keys the operation declared it sets
        completion: Completion rank; lower finished earlier
    """

    record: Record
    writes: frozenset[str]
    completion: int


def merge_outcomes(
    source: Record,
    outputs: Sequence[WriterOutput],
    strategy: MergeStrategy,
) -> Record:
    """Reconcile concurrent operations' outputs for one input record.

    Args:
        source: The record every operation received
        outputs: One entry per operation that wrote, in declaration order
        strategy: How to reconcile keys written by more than one operation

    Returns:
        The merged record
    """
    if len(outputs) == 1:
        return outputs[0].record

    removed = {key for out in outputs for key in source if key not in out.record}
    merged = source.with_removed(*removed).to_dict()

    writers: dict[str, list[WriterOutput]] = {}
    for out in outputs:
        for key in out.writes:
            if key in out.record:
                writers.setdefault(key, []).append(out)

    for key, outs in writers.items():
        if len(outs) == 1:
            merged[key] = outs[0].record.get(key)
        elif strategy is MergeStrategy.COLLATE:
            merged[key] = [out.record.get(key) for out in outs]
        elif strategy is MergeStrategy.FIRST_IN:
            merged[key] = min(outs, key=lambda o: o.completion).record.get(key)
        else:
            # last_in; disjoint never gets here with more than one writer
            merged[key] = max(outs, key=lambda o: o.completion).record.get(key)

    return Record(merged)


def merge_records(records: Iterable[Record], strategy: MergeStrategy) -> Record:
    """Combine many records into one (legacy merge-mode stages).

    Raises:
        ExecutionError: Under disjoint, if two records disagree on a key
    """
    records = list(records)
    if strategy is MergeStrategy.FIRST_IN:
        records = list(reversed(records))

    if strategy in (MergeStrategy.LAST_IN, MergeStrategy.FIRST_IN):
        combined: dict[str, Any] = {}
        for record in records:
            combined.update(record.to_dict())
        return Record(combined)

    values: dict[str, list[Any]] = {}
    for record in records:
        for key, value in record.items():
            values.setdefault(key, []).append(value)

    result: dict[str, Any] = {}
    for key, seen in values.items():
        if all(v == seen[0] for v in seen[1:]):
            result[key] = seen[0]
        elif strategy is MergeStrategy.DISJOINT:
            raise ExecutionError(f"Disjoint merge conflict on '{key}': records hold differing values {seen!r}")
        else:
            result[key] = seen
    return Record(result)
