"""
PostingOrchestrator -- preview, confirm and cancel as atomic units of work.

Responsibility:
    Drives the preview -> reserve -> validate -> commit pipeline.  A preview
    validates a proposal, reserves a document number, stores an immutable
    snapshot of exactly what will be posted and places holds on the
    headroom it consumes.  A confirm commits that snapshot to the ledger
    exactly once.

Architecture position:
    Kernel > Services.  The only component that commits or rolls back; every
    service it calls only flushes.

Invariants enforced:
    - Preview runs in one transaction: instrument locks, validation, ledger
      provisioning, number reservation, snapshot and holds become visible
      together or not at all.
    - Concurrent previews against the same instrument serialize on the
      per-tenant ledger lock and facility row locks taken (in sorted order)
      before validation, so each sees the other's holds.
    - Confirm runs in one transaction: the ledger rows, the document row,
      the finalized reservation and the USED snapshot commit together.  A
      second confirm of the same preview sees USED and is refused.
    - Only the snapshot payload is posted; nothing is re-derived at confirm.

Failure modes:
    - PreviewError subclasses from confirm (not found, gone, expired,
      tenant mismatch, hash mismatch).
    - NumberingUnavailableError from preview when no number could be held.
    - UnbalancedJournalError / SameAccountPostingError / EmptyJournalError
      when a stored snapshot is unfit to post.
    - ValidationFailedError from confirm when a period was closed over
      the posting date after the preview was taken.
    - Rendering failures after commit are reported as a RENDER_FAILED
      warning, never raised.

Audit relevance:
    Every ledger row carries the preview id and document number that
    produced it.  preview_created, confirm_completed and confirm_rejected
    are logged with the correlation id bound for the whole operation.
"""

import time
from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Iterable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lekka_kernel.domain.clock import Clock, SystemClock
from lekka_kernel.domain.coa import canonical_ledger_name, clean_name, looks_like_instrument
from lekka_kernel.domain.dtos import (
    ConfirmResult,
    DocumentModel,
    DocumentType,
    JournalLine,
    LedgerPair,
    PostedDocument,
    PreviewRequest,
    PreviewResult,
    PreviewStatus,
    ValidationIssue,
)
from lekka_kernel.domain.funds import Outflow, net_outflows
from lekka_kernel.domain.ledger_view import render_ledger_view
from lekka_kernel.domain.pairing import pair_lines, same_account_pairs
from lekka_kernel.domain.policy import LedgerPolicy
from lekka_kernel.domain.session_state import SessionStateStore
from lekka_kernel.domain.tax import TdsAggregateProvider
from lekka_kernel.exceptions import (
    EmptyJournalError,
    LekkaKernelError,
    PreviewGoneError,
    PreviewNotFoundError,
    PreviewTenantMismatchError,
    SameAccountPostingError,
    UnbalancedJournalError,
    ValidationFailedError,
)
from lekka_kernel.logging_config import LogContext, get_logger
from lekka_kernel.models.document import Document, DocumentStatus, IdempotencyKey
from lekka_kernel.models.ledger import LedgerEntry
from lekka_kernel.models.preview import PreviewSnapshot, SnapshotStatus
from lekka_kernel.models.series import ReservationStatus
from lekka_kernel.selectors.funds_selector import FundsSelector
from lekka_kernel.services.chart_service import ChartService
from lekka_kernel.services.funds_service import FundsService
from lekka_kernel.services.numbering_service import NumberingService
from lekka_kernel.services.period_lock_service import PeriodLockService
from lekka_kernel.services.rendering import DocumentRenderer, NullRenderer
from lekka_kernel.services.snapshot_service import SnapshotService
from lekka_kernel.services.validation.classification import classify
from lekka_kernel.services.validation.context import ValidationContext, ValidationLookups
from lekka_kernel.services.validation.engine import ValidationEngine
from lekka_kernel.services.validation.ledger_rules import parse_iso_date

logger = get_logger("services.posting_orchestrator")

PAYLOAD_VERSION = 1


def _as_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class PostingOrchestrator:
    """
    Coordinates preview, confirm, cancel and the expiry sweep.

    Contract:
        With ``auto_commit=True`` (default) each public operation commits on
        success and rolls back on failure.  With ``auto_commit=False`` the
        caller owns the transaction and the orchestrator only flushes.

    Guarantees:
        - A preview that returns status "invalid" or "followup_needed"
          leaves nothing behind: no ledgers, numbers, snapshots or holds.
        - Confirm posts the snapshot payload verbatim.

    Non-goals:
        - Does NOT classify documents or infer accounts from free text.
        - Does NOT render document files; it calls the injected renderer.
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
        renderer: DocumentRenderer | None = None,
        tds_aggregates: TdsAggregateProvider | None = None,
        session_state: SessionStateStore | None = None,
        engine: ValidationEngine | None = None,
    ):
        self._session = session
        self._policy = policy or LedgerPolicy()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._renderer = renderer or NullRenderer()
        self._tds_aggregates = tds_aggregates
        self._session_state = session_state
        self._engine = engine or ValidationEngine()

        self._chart = ChartService(session)
        self._funds = FundsService(session)
        self._snapshots = SnapshotService(session)
        self._numbering = NumberingService(
            session,
            max_attempts=self._policy.numbering.max_reserve_attempts,
            fiscal_year_start_month=self._policy.numbering.fiscal_year_start_month,
        )

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(self, request: PreviewRequest) -> PreviewResult:
        """
        Validate a proposal and stage it for confirm.

        Returns:
            PreviewResult with status "preview", "invalid" or
            "followup_needed".

        Raises:
            NumberingUnavailableError: no document number could be held.
        """
        doc_type = DocumentType.parse(request.doc_type)
        with LogContext.bind(
            correlation_id=str(uuid4()),
            tenant_id=request.tenant_id,
            doc_type=doc_type.value,
            actor_id=request.actor,
        ):
            logger.info("preview_started", extra={"line_count": len(request.lines)})
            t0 = time.monotonic()
            try:
                result = self._do_preview(request, doc_type)
                if self._auto_commit:
                    if result.is_preview:
                        self._session.commit()
                    else:
                        self._session.rollback()
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error("preview_failed", extra={"duration_ms": duration_ms}, exc_info=True)
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            if result.is_preview:
                self._remember(request, result)
                logger.info(
                    "preview_created",
                    extra={
                        "preview_id": str(result.preview_id),
                        "document_number": result.document_number,
                        "pair_count": len(result.pairs),
                        "new_accounts": list(result.new_accounts),
                        "duration_ms": duration_ms,
                    },
                )
            elif result.status is PreviewStatus.INVALID:
                logger.warning(
                    "preview_invalid",
                    extra={
                        "codes": sorted({e.code for e in result.errors}),
                        "duration_ms": duration_ms,
                    },
                )
            else:
                logger.info("preview_followup_needed", extra={"duration_ms": duration_ms})
            return result

    def _do_preview(self, request: PreviewRequest, doc_type: DocumentType) -> PreviewResult:
        tenant_id = request.tenant_id
        now = self._clock.now()
        today = now.date()
        document = request.document or DocumentModel()

        lines = self._resolve_names(tenant_id, self._fill_dates(request.lines, document, today))
        accounts = sorted({line.account for line in lines if line.account})
        self._chart.lock_accounts(tenant_id, accounts)
        self._funds.lock_facilities(tenant_id, accounts)

        lookups = ValidationLookups(self._session, tenant_id, now, self._tds_aggregates)
        ctx = ValidationContext(
            doc_type=doc_type,
            lines=lines,
            tenant_id=tenant_id,
            policy=self._policy,
            as_of=today,
            lookups=lookups,
            document=document,
            idempotency_key=request.idempotency_key,
        )
        hard, soft = classify(self._engine.validate(ctx), self._policy)

        # A deactivated ledger cannot be provisioned over, so it always blocks
        inactive = tuple(
            w for w in soft.warnings
            if w.code == "LEDGER_MISSING" and w.metadata.get("inactive")
        )
        hard = (*hard, *inactive)
        warnings = tuple(w for w in soft.warnings if w not in inactive)

        if hard:
            return PreviewResult(
                status=PreviewStatus.INVALID,
                doc_type=doc_type,
                errors=tuple(hard),
                warnings=warnings,
                info=soft.info,
            )

        pairs = pair_lines(lines)
        if not pairs:
            return PreviewResult(
                status=PreviewStatus.FOLLOWUP_NEEDED,
                doc_type=doc_type,
                warnings=warnings,
                info=soft.info,
            )
        if same_account_pairs(pairs):
            issue = ValidationIssue(
                "LEDGER_SAME_ACCOUNT",
                "Cannot post a ledger against itself",
                metadata={"accounts": sorted({p.debit_account for p in same_account_pairs(pairs)})},
            )
            return PreviewResult(
                status=PreviewStatus.INVALID,
                doc_type=doc_type,
                errors=(issue,),
                warnings=warnings,
                info=soft.info,
            )

        new_accounts = self._provision_missing(tenant_id, warnings)
        warnings = tuple(w for w in warnings if w.code != "LEDGER_MISSING")

        preview_id = uuid4()
        posting_date = self._posting_date(document, lines, today)
        reservation = self._numbering.reserve_next(
            tenant_id,
            doc_type,
            posting_date,
            now,
            self._policy.numbering.reservation_ttl_seconds,
            preview_id=preview_id,
        )

        holds = self._guarded_outflows(tenant_id, lines, lookups)
        payload = {
            "version": PAYLOAD_VERSION,
            "tenant_id": tenant_id,
            "doc_type": doc_type.value,
            "document_number": reservation.number,
            "reservation_id": str(reservation.reservation_id),
            "fiscal_year": reservation.fiscal_year,
            "posting_date": posting_date.isoformat(),
            "idempotency_key": request.idempotency_key,
            "document": document.to_payload(),
            "lines": [line.to_payload() for line in lines],
            "pairs": [pair.to_payload() for pair in pairs],
            "holds": [
                {"account": h.account, "date": h.date, "amount": h.amount} for h in holds
            ],
        }
        snapshot = self._snapshots.create(
            tenant_id=tenant_id,
            doc_type=doc_type,
            payload=payload,
            reservation_id=reservation.reservation_id,
            document_number=reservation.number,
            now=now,
            ttl_seconds=self._policy.preview.ttl_seconds,
            preview_id=preview_id,
            created_by=request.actor,
            session_id=request.session_id,
        )
        self._funds.create_holds(
            tenant_id,
            preview_id,
            holds,
            now + timedelta(seconds=self._policy.preview.funds_hold_ttl_seconds),
        )

        return PreviewResult(
            status=PreviewStatus.PREVIEW,
            doc_type=doc_type,
            warnings=warnings,
            info=soft.info,
            preview_id=preview_id,
            hash=snapshot.payload_hash,
            expires_at=snapshot.expires_at,
            pairs=pairs,
            ledger_view=render_ledger_view(pairs),
            document_number=reservation.number,
            reservation_id=reservation.reservation_id,
            new_accounts=tuple(new_accounts),
        )

    def _fill_dates(
        self,
        lines: Iterable[JournalLine],
        document: DocumentModel,
        today: date,
    ) -> tuple[JournalLine, ...]:
        """Undated lines take the document date, else today."""
        fallback = document.doc_date or today.isoformat()
        return tuple(
            line if line.date else replace(line, date=fallback) for line in lines
        )

    def _resolve_names(self, tenant_id: str, lines: tuple[JournalLine, ...]) -> tuple[JournalLine, ...]:
        """Rename each line's account to the chart's spelling, or its canonical form."""
        resolved: dict[str, str] = {}
        out = []
        for line in lines:
            if line.account not in resolved:
                info = self._chart.lookup(tenant_id, line.account) if line.account else None
                resolved[line.account] = (
                    info.name if info is not None else clean_name(canonical_ledger_name(line.account))
                )
            out.append(replace(line, account=resolved[line.account]))
        return tuple(out)

    def _provision_missing(self, tenant_id: str, warnings: Iterable[ValidationIssue]) -> list[str]:
        created: list[str] = []
        for issue in warnings:
            if issue.code != "LEDGER_MISSING":
                continue
            name = issue.metadata.get("account")
            if not name:
                continue
            info, was_created = self._chart.ensure_ledger(tenant_id, name)
            if was_created and info.name not in created:
                created.append(info.name)
        return created

    def _posting_date(self, document: DocumentModel, lines: tuple[JournalLine, ...], today: date) -> date:
        for candidate in (document.doc_date, *(line.date for line in lines)):
            parsed = parse_iso_date(candidate)
            if parsed is not None:
                return parsed
        return today

    def _guarded_outflows(
        self,
        tenant_id: str,
        lines: tuple[JournalLine, ...],
        lookups: ValidationLookups,
    ) -> list[Outflow]:
        if not self._policy.cash_bank.block_negative:
            return []
        funds = FundsSelector(self._session)
        guarded = []
        for outflow in net_outflows(lines):
            on = parse_iso_date(outflow.date)
            if on is None:
                continue
            info = lookups.account(outflow.account)
            account_type = info.account_type if info is not None else None
            if (
                looks_like_instrument(outflow.account, account_type)
                or funds.facility_for(tenant_id, outflow.account, on) is not None
            ):
                guarded.append(outflow)
        return guarded

    def _remember(self, request: PreviewRequest, result: PreviewResult) -> None:
        if self._session_state is None or not request.session_id:
            return

        def _mutate(state: dict[str, Any]) -> None:
            state["last_preview_id"] = str(result.preview_id)
            state["doc_type"] = result.doc_type.value
            state["document_number"] = result.document_number

        self._session_state.update(request.tenant_id, request.session_id, _mutate)

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------

    def confirm(
        self,
        preview_id: UUID | str,
        expected_hash: str,
        tenant_id: str,
        idempotency_key: str | None = None,
    ) -> ConfirmResult:
        """
        Commit a previewed snapshot to the ledger, exactly once.

        Raises:
            PreviewNotFoundError, PreviewGoneError, PreviewExpiredError:
                the snapshot cannot be confirmed any more.
            PreviewTenantMismatchError, PreviewHashMismatchError:
                the caller is confirming something other than what was
                previewed.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            tenant_id=tenant_id,
            preview_id=str(preview_id),
        ):
            logger.info("confirm_started")
            t0 = time.monotonic()
            try:
                result = self._do_confirm(preview_id, expected_hash, tenant_id, idempotency_key)
                if self._auto_commit:
                    self._session.commit()
            except LekkaKernelError as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "confirm_rejected",
                    extra={"code": exc.code, "category": exc.category, "error": str(exc)},
                )
                raise
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error("confirm_failed", extra={"duration_ms": duration_ms}, exc_info=True)
                raise

            result = self._render(result)
            logger.info(
                "confirm_completed",
                extra={
                    "document_number": result.document_number,
                    "posted": result.posted,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def _do_confirm(
        self,
        preview_id: UUID | str,
        expected_hash: str,
        tenant_id: str,
        idempotency_key: str | None,
    ) -> ConfirmResult:
        now = self._clock.now()
        pid = _as_uuid(preview_id)
        if pid is None:
            raise PreviewNotFoundError(str(preview_id))

        snapshot = self._snapshots.verify_for_confirm(pid, expected_hash, tenant_id, now)
        payload = snapshot.payload
        doc_type = DocumentType.parse(payload["doc_type"])

        self._funds.release_holds(pid)
        self._record_idempotency_key(tenant_id, idempotency_key or payload.get("idempotency_key"), pid)

        pairs = self._checked_pairs(pid, payload)
        self._assert_periods_open(tenant_id, pairs)

        document_row = None
        if doc_type.carries_document:
            document_row = self._insert_document(snapshot, payload, pairs)

        for pair in pairs:
            self._session.add(
                LedgerEntry(
                    tenant_id=tenant_id,
                    debit_account=pair.debit_account,
                    credit_account=pair.credit_account,
                    amount_minor=pair.amount,
                    transaction_date=date.fromisoformat(pair.date),
                    narration=pair.narration,
                    document_number=snapshot.document_number,
                    document_id=document_row.id if document_row is not None else None,
                    preview_id=pid,
                )
            )
        self._session.flush()

        self._numbering.finalize(snapshot.reservation_id)
        self._snapshots.mark_used(snapshot, now)

        posted_document = None
        if document_row is not None:
            posted_document = PostedDocument(
                document_id=document_row.id,
                tenant_id=tenant_id,
                doc_type=doc_type,
                number=document_row.number,
                doc_date=document_row.doc_date,
                party=document_row.party,
                gross_minor=document_row.gross_minor,
            )
        return ConfirmResult(
            preview_id=pid,
            posted=len(pairs),
            document_number=snapshot.document_number,
            document=posted_document,
        )

    def _checked_pairs(self, preview_id: UUID, payload: dict[str, Any]) -> tuple[LedgerPair, ...]:
        pairs = tuple(LedgerPair.from_payload(p) for p in payload.get("pairs") or ())
        if not pairs:
            raise EmptyJournalError(preview_id)
        for pair in pairs:
            if pair.is_same_account:
                raise SameAccountPostingError(pair.debit_account)
        lines = payload.get("lines") or ()
        debit = sum(int(line.get("debit") or 0) for line in lines)
        credit = sum(int(line.get("credit") or 0) for line in lines)
        paired = sum(pair.amount for pair in pairs)
        if not (debit == credit == paired):
            raise UnbalancedJournalError(debit, credit)
        return pairs

    def _assert_periods_open(self, tenant_id: str, pairs: tuple[LedgerPair, ...]) -> None:
        """A period closed after the preview still refuses the post."""
        periods = PeriodLockService(self._session)
        locked = sorted({
            pair.date for pair in pairs
            if periods.is_locked(tenant_id, date.fromisoformat(pair.date))
        })
        if locked:
            raise ValidationFailedError([
                {"code": "PERIOD_LOCKED", "message": f"Period locked for date {d}", "date": d}
                for d in locked
            ])

    def _record_idempotency_key(self, tenant_id: str, key: str | None, preview_id: UUID) -> None:
        if not key:
            return
        existing = self._session.execute(
            select(IdempotencyKey.preview_id).where(
                IdempotencyKey.tenant_id == tenant_id,
                IdempotencyKey.key == key,
            )
        ).scalar_one_or_none()
        if existing is not None:
            logger.info(
                "idempotency_key_reused",
                extra={"key": key, "first_preview_id": str(existing)},
            )
            return
        savepoint = self._session.begin_nested()
        try:
            self._session.add(IdempotencyKey(tenant_id=tenant_id, key=key, preview_id=preview_id))
            self._session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.info("idempotency_key_reused", extra={"key": key})

    def _insert_document(
        self,
        snapshot: PreviewSnapshot,
        payload: dict[str, Any],
        pairs: tuple[LedgerPair, ...],
    ) -> Document:
        doc = payload.get("document") or {}
        doc_date = parse_iso_date(doc.get("doc_date")) or date.fromisoformat(payload["posting_date"])
        gross = doc.get("total_minor")
        if gross is None:
            gross = sum(pair.amount for pair in pairs)
        row = Document(
            tenant_id=snapshot.tenant_id,
            doc_type=snapshot.doc_type,
            number=snapshot.document_number,
            reference=doc.get("reference"),
            doc_date=doc_date,
            party=doc.get("party"),
            gross_minor=int(gross),
            status=DocumentStatus.FINALIZED.value,
            preview_id=snapshot.preview_id,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def _render(self, result: ConfirmResult) -> ConfirmResult:
        if result.document is None:
            return result
        try:
            path = self._renderer.render(result.document)
        except Exception as exc:
            logger.warning(
                "render_failed",
                extra={"document_number": result.document_number},
                exc_info=True,
            )
            warning = ValidationIssue(
                "RENDER_FAILED",
                f"Document {result.document_number} was posted but could not be rendered: {exc}",
                metadata={"document_number": result.document_number},
            )
            return replace(result, warnings=(*result.warnings, warning))
        return replace(result, rendered_path=path)

    # ------------------------------------------------------------------
    # Cancel and sweep
    # ------------------------------------------------------------------

    def cancel_preview(self, preview_id: UUID | str, tenant_id: str) -> bool:
        """
        Abandon an outstanding preview: release holds, expire the number
        and the snapshot.

        Returns:
            True if the preview was active and is now cancelled, False if it
            had already expired.

        Raises:
            PreviewNotFoundError, PreviewTenantMismatchError, PreviewGoneError
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            tenant_id=tenant_id,
            preview_id=str(preview_id),
        ):
            try:
                cancelled = self._do_cancel(preview_id, tenant_id)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning("preview_cancel_failed", exc_info=True)
                raise
            logger.info("preview_cancelled", extra={"cancelled": cancelled})
            return cancelled

    def _do_cancel(self, preview_id: UUID | str, tenant_id: str) -> bool:
        pid = _as_uuid(preview_id)
        snapshot = self._snapshots.get(pid, for_update=True) if pid is not None else None
        if snapshot is None:
            raise PreviewNotFoundError(str(preview_id))
        if snapshot.tenant_id != tenant_id:
            raise PreviewTenantMismatchError(pid, tenant_id)
        if snapshot.status == SnapshotStatus.USED.value:
            raise PreviewGoneError(pid, snapshot.status)

        self._funds.release_holds(pid)
        if snapshot.status == SnapshotStatus.EXPIRED.value:
            return False
        if self._numbering.get_status(snapshot.reservation_id) == ReservationStatus.HELD:
            self._numbering.cancel(snapshot.reservation_id)
        self._snapshots.expire(snapshot)
        return True

    def sweep_expired(self) -> dict[str, int]:
        """Expire lapsed reservations and snapshots and purge lapsed holds."""
        now = self._clock.now()
        try:
            counts = {
                "reservations": self._numbering.expire_stale(now),
                "snapshots": self._snapshots.expire_stale(now),
                "holds": self._funds.purge_expired(now),
            }
            if self._auto_commit:
                self._session.commit()
        except Exception:
            if self._auto_commit:
                self._session.rollback()
            logger.error("sweep_failed", exc_info=True)
            raise
        logger.info("sweep_completed", extra=counts)
        return counts
