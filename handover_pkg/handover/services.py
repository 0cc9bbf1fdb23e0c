# handover_pkg/handover/services.py
"""
Handover lifecycle: create, update, finalize, plus the critical-patient and
aggregation entry points the rest of the application calls.
"""
import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from .. import db
from ..audit.services import AUDIT_ACTOR_KEY
from ..errors import (
    ConflictError,
    DataSourceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..models import Handover, HANDOVER_DRAFT, HANDOVER_FINALIZED, HANDOVER_IN_PROGRESS
from ..utils import get_logger, utcnow
from .aggregator import HandoverAggregator
from .detector import detect
from .repository import ClinicalRepository, HandoverRepository
from .signals import ClinicalSignalReader
from .summary import generate_summary
from .types import CriticalPatientEntry
from .validation import clean_id_list, validate_create, validate_filters, validate_update


PATIENT_PATCH_KEYS = frozenset(('included_patient_ids', 'add_patient_ids', 'remove_patient_ids'))


def _merge_ids(current, add=(), remove=()):
    removed = set(remove or ())
    merged = [i for i in current if i not in removed]
    merged.extend(i for i in (add or ()) if i not in removed)
    return list(dict.fromkeys(merged))


class HandoverService:
    """
    Owns the Handover aggregate.

    Collaborators are passed in; nothing here is a module-level singleton.
    ``version`` is maintained by the mapper (``version_id_col``), so each
    committed update or finalize moves it forward by exactly one and a
    concurrent writer holding a stale version gets a ConflictError.
    """

    def __init__(self, session, clinical_repository=None, handover_repository=None,
                 clock=utcnow, summary_generator=generate_summary,
                 page_limit=20, max_page_limit=100):
        self.session = session
        self.clinical = clinical_repository or ClinicalRepository(session)
        self.handovers = handover_repository or HandoverRepository(session)
        self.clock = clock
        self.signal_reader = ClinicalSignalReader(self.clinical)
        self.aggregator = HandoverAggregator(self.clinical)
        self.summary_generator = summary_generator
        self.page_limit = page_limit
        self.max_page_limit = max_page_limit

    @classmethod
    def from_app(cls, app=None, **kwargs):
        """Build a service bound to the Flask-SQLAlchemy session and app config."""
        app = app or current_app
        kwargs.setdefault('page_limit', app.config.get('HANDOVER_PAGE_LIMIT', 20))
        kwargs.setdefault('max_page_limit', app.config.get('HANDOVER_MAX_PAGE_LIMIT', 100))
        return cls(db.session, **kwargs)

    # --- Reads ---

    def get(self, handover_id):
        handover = self.handovers.get(handover_id)
        if handover is None:
            raise NotFoundError(f"Handover {handover_id} not found")
        return handover

    def list(self, filters=None):
        cleaned, page, limit = validate_filters(filters, self.page_limit, self.max_page_limit)
        items, total = self.handovers.list(cleaned, page, limit)
        return {"handovers": items, "total": total, "page": page, "limit": limit}

    def get_active(self, hospital, on_date=None):
        """Most recent open handover of ``hospital`` whose shift falls on ``on_date`` (default today)."""
        if not hospital:
            raise ValidationError("hospital: field is required")
        day = on_date or self.clock()
        if isinstance(day, datetime.datetime):
            day = day.date()
        day_start = datetime.datetime.combine(day, datetime.time.min)
        return self.handovers.find_active(hospital, day_start, day_start + datetime.timedelta(days=1))

    # --- Critical patients & aggregation ---

    def detect_critical_with_failures(self, patient_ids, hospital, now=None):
        """
        Run detection and also report patients whose signals could not be read.

        Returns ``(roster, failures)``; ``failures`` maps patient ID to the
        DataSourceError raised for it. Those patients are not in the roster.
        """
        ids = clean_id_list(patient_ids, 'patient_ids')
        if not ids:
            return [], {}
        now = now or self.clock()
        batch = self.signal_reader.fetch_signals(ids, now, hospital=hospital)
        if batch.has_failures:
            get_logger(__name__).warning(
                f"Critical-patient detection degraded: {len(batch.failures)} of {len(ids)} patient(s) skipped"
            )
        return detect(batch.summaries.values(), now), dict(batch.failures)

    def detect_critical(self, patient_ids, hospital, now=None):
        roster, _ = self.detect_critical_with_failures(patient_ids, hospital, now=now)
        return roster

    def aggregate(self, handover_id):
        handover = self.get(handover_id)
        roster = [CriticalPatientEntry.from_dict(e) for e in handover.critical_patients or []]
        return self.aggregator.aggregate(
            handover.included_patient_ids or [],
            handover.included_task_ids or [],
            critical_patients=roster,
            general_notes=handover.general_notes,
        )

    # --- Mutations ---

    def create(self, data):
        cleaned = validate_create(data)

        existing = self.handovers.find_open_for_shift(
            cleaned['hospital'], cleaned['service'], cleaned['shift_type'], cleaned['shift_date']
        )
        if existing is not None:
            raise ConflictError("An open handover already exists for this shift", details={"handover_id": existing.id})

        now = self.clock()
        handover = Handover(
            hospital=cleaned['hospital'],
            service=cleaned['service'],
            shift_type=cleaned['shift_type'],
            shift_date=cleaned['shift_date'],
            start_time=cleaned['start_time'] or now,
            end_time=cleaned['end_time'],
            status=cleaned['status'],
            included_patient_ids=cleaned['included_patient_ids'],
            included_task_ids=cleaned['included_task_ids'],
            checklist_items=[],
            critical_patients=[],
            general_notes=cleaned['general_notes'],
            created_by=cleaned['created_by'],
            created_at=now,
            updated_at=now,
        )
        self.handovers.add(handover)
        self._commit(performed_by=cleaned['created_by'])
        get_logger(__name__).info(
            f"Handover {handover.id} created for {handover.hospital}/{handover.service} "
            f"{handover.shift_type} {handover.shift_date.date()}"
        )
        return handover

    def update(self, handover_id, patch, expected_version=None, performed_by=None):
        cleaned = validate_update(patch)
        handover = self._get_mutable(handover_id)
        if expected_version is not None and expected_version != handover.version:
            raise ConflictError(
                f"Handover {handover_id} is at version {handover.version}, expected {expected_version}"
            )

        patients = cleaned.get('included_patient_ids', list(handover.included_patient_ids or []))
        patients = _merge_ids(patients, cleaned.get('add_patient_ids'), cleaned.get('remove_patient_ids'))
        tasks = cleaned.get('included_task_ids', list(handover.included_task_ids or []))
        tasks = _merge_ids(tasks, cleaned.get('add_task_ids'), cleaned.get('remove_task_ids'))
        handover.included_patient_ids = patients
        handover.included_task_ids = tasks

        if 'checklist_items' in cleaned:
            handover.checklist_items = [item.to_dict() for item in cleaned['checklist_items']]
        if 'general_notes' in cleaned:
            handover.general_notes = cleaned['general_notes']
        if 'end_time' in cleaned:
            handover.end_time = cleaned['end_time']
        if 'critical_patients' in cleaned:
            # Replaced wholesale so patients that improved drop off the roster.
            handover.critical_patients = [e.to_dict() for e in cleaned['critical_patients']]

        if 'status' in cleaned:
            handover.status = cleaned['status']
        elif handover.status == HANDOVER_DRAFT and patients and PATIENT_PATCH_KEYS.intersection(cleaned):
            handover.status = HANDOVER_IN_PROGRESS

        handover.updated_at = self.clock()
        # The UPDATE is emitted even when no column changed, so version always moves.
        flag_modified(handover, 'updated_at')
        self._commit(performed_by=performed_by)
        get_logger(__name__).info(f"Handover {handover.id} updated to version {handover.version}")
        return handover

    def refresh_critical_patients(self, handover_id, performed_by=None):
        """Recompute the roster from current signals and store it in place of the old one."""
        handover = self._get_mutable(handover_id)
        roster = self.detect_critical(handover.included_patient_ids or [], handover.hospital)
        return self.update(handover_id, {'critical_patients': roster}, performed_by=performed_by)

    def finalize(self, handover_id, performed_by=None):
        handover = self.get(handover_id)
        if handover.is_finalized:
            raise InvalidStateError(f"Handover {handover_id} is already finalized")

        patient_ids = list(handover.included_patient_ids or [])
        if not patient_ids:
            raise ValidationError("No patients are included in the handover")

        now = self.clock()
        try:
            # Every read happens before the aggregate is touched.
            roster, failures = self.detect_critical_with_failures(patient_ids, handover.hospital, now=now)
            if failures:
                # A finalized roster is immutable; it cannot leave a patient out.
                raise next(iter(failures.values()))
            view = self.aggregator.aggregate(
                patient_ids,
                handover.included_task_ids or [],
                critical_patients=roster,
                general_notes=handover.general_notes,
            )
            summary = self.summary_generator(view, roster, generated_at=now)

            handover.generated_summary = summary.text
            handover.critical_patients = [e.to_dict() for e in roster]
            handover.status = HANDOVER_FINALIZED
            handover.finalized_at = now
            handover.updated_at = now
            self._commit(performed_by=performed_by)
        except Exception:
            self.handovers.rollback()
            get_logger(__name__).error(f"Finalizing handover {handover_id} failed; no changes committed")
            raise

        get_logger(__name__).info(
            f"Handover {handover.id} finalized at version {handover.version} "
            f"({summary.patient_count} patients, {summary.critical_count} critical)"
        )
        return handover

    # --- Helpers ---

    def _get_mutable(self, handover_id):
        handover = self.get(handover_id)
        if handover.status == HANDOVER_FINALIZED:
            raise InvalidStateError(f"Handover {handover_id} is finalized and can no longer be modified")
        return handover

    def _commit(self, performed_by=None):
        self.session.info[AUDIT_ACTOR_KEY] = performed_by
        try:
            self.handovers.commit()
        except StaleDataError as e:
            self.handovers.rollback()
            raise ConflictError("Handover was modified concurrently; reload and retry") from e
        except SQLAlchemyError as e:
            self.handovers.rollback()
            get_logger(__name__).error(f"Database error while saving handover: {e}")
            raise DataSourceError("A database error occurred while saving the handover.") from e
        finally:
            self.session.info.pop(AUDIT_ACTOR_KEY, None)
