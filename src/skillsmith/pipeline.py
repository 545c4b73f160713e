"""IngestionPipeline: classify -> extract -> group -> merge -> write -> report.

One run consumes a finite batch of documents. Documents are grouped by
target entry before merging, so each entry is owned by exactly one task
for the whole run; distinct entries share no state and are processed in
a thread pool. Every failure is recorded in the ChangeReport. Nothing
raises past `run()`.
"""

from __future__ import annotations

import contextvars
import copy
import re
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path

from skillsmith.classify import Classifier, ClassificationRule, Ruleset, top_keywords
from skillsmith.config import SkillsmithConfig
from skillsmith.core.models import (
    ChangeKind,
    ChangeRecord,
    ChangeReport,
    EntryAction,
    IncomingDocument,
    KnowledgeEntry,
    Record,
    RecordStatus,
)
from skillsmith.errors import MalformedDocument, MissingRequiredField, UnclassifiableDocument
from skillsmith.extract import Extractor
from skillsmith.merge import Merger
from skillsmith.observability import emit, get_logger, run_context
from skillsmith.observability.events import EntryFailed, RecordRejected, RunCompleted
from skillsmith.store.base import KnowledgeBase
from skillsmith.store.writer import Writer

logger = get_logger(__name__)

_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(filename: str) -> str:
    """Entry name for a new entry created from an unmapped document."""
    return _SLUG.sub("-", Path(filename).stem.lower()).strip("-") or "untitled"


def check_document(document: IncomingDocument) -> None:
    if not (document.filename or "").strip():
        raise MalformedDocument("document has no filename")
    if not (document.text or "").strip():
        raise MalformedDocument(f"{document.filename}: document is empty")


def _classify(classifier: Classifier, document: IncomingDocument) -> list[str]:
    result = classifier.classify(document)
    if result.unmapped:
        raise UnclassifiableDocument(document.filename, result.explanation)
    return result.entries


@dataclass
class EntryOutcome:
    """What one entry task produced."""

    name: str
    action: EntryAction
    entry: KnowledgeEntry
    changes: list[ChangeRecord] = field(default_factory=list)


@dataclass
class RunResult:
    report: ChangeReport
    ruleset: Ruleset
    entries: dict[str, KnowledgeEntry] = field(default_factory=dict)


class IngestionPipeline:
    """Batch ingestion of documents into a knowledge base."""

    def __init__(
        self,
        kb: KnowledgeBase,
        ruleset: Ruleset,
        config: SkillsmithConfig | None = None,
        extractor: Extractor | None = None,
        merger: Merger | None = None,
    ) -> None:
        self.config = config or SkillsmithConfig()
        if self.config.threshold is not None:
            ruleset = replace(ruleset, threshold=self.config.threshold)
        self.kb = kb
        self.ruleset = ruleset
        self.extractor = extractor or Extractor()
        self.merger = merger or Merger()
        self.writer = Writer(kb, ceiling=self.config.section_ceiling)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(
        self,
        documents: list[IncomingDocument],
        assignments: dict[str, str] | None = None,
        create_unmapped: bool = False,
    ) -> RunResult:
        """Ingest a batch.

        Args:
            documents: The batch. Order does not matter; each entry's
                documents are merged oldest upload first.
            assignments: filename -> entry name. A human decision that
                overrides classification, typically for unmapped files.
            create_unmapped: Create a new entry for every unmapped
                document and add a signature rule for it to the ruleset.

        Returns:
            RunResult with the report, the (possibly extended) ruleset and
            the written entries.
        """
        started = time.perf_counter()
        report = ChangeReport(run_id=uuid.uuid4().hex[:12], ruleset_version=self.ruleset.version)
        ruleset = self.ruleset
        assignments = assignments or {}

        with run_context(run_id=report.run_id):
            targets, seeds, ruleset = self._route(documents, assignments, create_unmapped, ruleset, report)
            outcomes = self._run_entries(targets, seeds, ruleset, report)

        for name in sorted(outcomes):
            outcome = outcomes[name]
            report.extend(outcome.changes)
            report.set_action(name, outcome.action)

        report.ruleset_version = ruleset.version
        emit(RunCompleted(
            run_id=report.run_id,
            documents=len(documents),
            entries_touched=sum(1 for a in report.actions.values() if a != EntryAction.NONE),
            unresolved=len(report.unresolved),
            rejected=len(report.rejected),
            latency_ms=(time.perf_counter() - started) * 1000,
        ))
        return RunResult(
            report=report,
            ruleset=ruleset,
            entries={name: o.entry for name, o in outcomes.items()},
        )

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _route(
        self,
        documents: list[IncomingDocument],
        assignments: dict[str, str],
        create_unmapped: bool,
        ruleset: Ruleset,
        report: ChangeReport,
    ) -> tuple[dict[str, list[IncomingDocument]], dict[str, list[str]], Ruleset]:
        """Classify each document and group the batch by target entry."""
        targets: dict[str, list[IncomingDocument]] = {}
        seeds: dict[str, list[str]] = {}
        classifier = Classifier(ruleset)

        for document in documents:
            try:
                check_document(document)
            except MalformedDocument as err:
                logger.warning("document.malformed", document=document.filename, error=str(err))
                report.append(
                    "", ChangeKind.UNRESOLVED, f"malformed: {err}",
                    document=document.filename or "<unnamed>",
                )
                continue

            assigned = assignments.get(document.filename)
            try:
                names = [assigned] if assigned else _classify(classifier, document)
            except UnclassifiableDocument as err:
                keywords = top_keywords(document.text) if create_unmapped else []
                if not keywords:
                    report.append("", ChangeKind.UNRESOLVED, err.explanation, document=err.filename)
                    continue
                name = slugify(document.filename)
                ruleset = ruleset.with_rule(ClassificationRule.build(name, keywords))
                classifier = Classifier(ruleset)
                seeds[name] = keywords
                names = [name]
                logger.info("entry.proposed", entry=name, document=document.filename, keywords=keywords)

            for name in names:
                targets.setdefault(name, []).append(document)

        return targets, seeds, ruleset

    def _run_entries(
        self,
        targets: dict[str, list[IncomingDocument]],
        seeds: dict[str, list[str]],
        ruleset: Ruleset,
        report: ChangeReport,
    ) -> dict[str, EntryOutcome]:
        """One task per entry. A failed task becomes an error line."""
        outcomes: dict[str, EntryOutcome] = {}
        workers = max(1, min(self.config.max_workers, len(targets) or 1))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="skillsmith") as pool:
            # each task runs in a copy of this context so log lines keep the run_id
            futures: dict[str, Future] = {
                name: pool.submit(
                    contextvars.copy_context().run,
                    self._process_entry, name, targets[name], seeds.get(name), ruleset,
                )
                for name in sorted(targets)
            }
            for name, future in futures.items():
                try:
                    outcomes[name] = future.result()
                except Exception as err:  # one entry never aborts the batch
                    logger.exception("entry.failed", entry=name)
                    emit(EntryFailed(entry=name, error=f"{type(err).__name__}: {err}"))
                    report.append(name, ChangeKind.ERROR, f"{type(err).__name__}: {err}")
                    report.set_action(name, EntryAction.NONE)
        return outcomes

    # ------------------------------------------------------------------
    # Per-entry task
    # ------------------------------------------------------------------

    def _process_entry(
        self,
        name: str,
        documents: list[IncomingDocument],
        seed_keywords: list[str] | None,
        ruleset: Ruleset,
    ) -> EntryOutcome:
        existing = self.kb.get(name)
        created = existing is None
        entry = existing or KnowledgeEntry(
            name=name,
            keywords=list(seed_keywords or sorted(ruleset.signature(name))),
        )

        records: list[Record] = []
        for document in sorted(documents, key=lambda d: d.uploaded_at):
            extraction = self.extractor.extract(document, name)
            if extraction.empty:
                logger.info("document.no_records", entry=name, document=document.filename)
            records.extend(extraction.records())

        rejected: list[ChangeRecord] = []
        demoted_stored = False
        while True:
            merged = self.merger.merge(entry, copy.deepcopy(records))
            if not (created or demoted_stored or merged.changed or self.writer.over_ceiling(merged.entry)):
                return EntryOutcome(name, EntryAction.NONE, entry, rejected + merged.changes)
            try:
                written = self.writer.write(merged.entry)
                break
            except MissingRequiredField as err:
                rejected_ids = {r.id for r in err.records}
                rejected.extend(self._reject(name, err.records))
                records = [r for r in records if r.id not in rejected_ids]
                entry = entry.copy()
                # stored records are never dropped: invalid ones go to overflow
                for stored in [r for r in entry.records() if r.id in rejected_ids]:
                    entry.remove(stored)
                    stored.status = RecordStatus.REJECTED
                    entry.overflow.append(stored)
                    demoted_stored = True

        if created:
            action = EntryAction.CREATED
        elif merged.changed or written.demoted or demoted_stored:
            action = EntryAction.UPDATED
        else:
            action = EntryAction.NONE
        return EntryOutcome(name, action, written.entry, merged.changes + rejected + written.changes)

    def _reject(self, name: str, records: list[Record]) -> list[ChangeRecord]:
        changes = []
        for record in records:
            missing = record.missing_fields()
            record.status = RecordStatus.REJECTED
            emit(RecordRejected(entry=name, record_id=record.id, missing=tuple(missing)))
            logger.warning("record.rejected", entry=name, record=record.id, missing=missing)
            changes.append(ChangeRecord(
                entry=name,
                kind=ChangeKind.REJECTED,
                detail=f"{record.summary()} missing {', '.join(missing)}",
                document=record.sources[-1].document if record.sources else None,
                record_id=record.id,
            ))
        return changes
