# handover_pkg/handover/repository.py
"""
Datastore collaborators of the handover engine.

``ClinicalRepository`` is the read-only view over patients, tasks and
clinical notes; ``HandoverRepository`` persists the Handover aggregate. Both
take the SQLAlchemy session they run on, so tests and callers decide which
session (and which transaction) the engine sees.
"""
from functools import wraps

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..errors import DataSourceError
from ..models import (
    ClinicalNote,
    Handover,
    MUTABLE_HANDOVER_STATUSES,
    OPEN_TASK_STATUSES,
    Patient,
    Task,
    TASK_PRIORITY_HIGH,
    TASK_PRIORITY_URGENT,
)


def datasource_call(f):
    """Re-raise SQLAlchemy failures as DataSourceError, untouched otherwise."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SQLAlchemyError as e:
            raise DataSourceError(f"{f.__name__} failed: {e}") from e
    return decorated_function


class ClinicalRepository:

    def __init__(self, session):
        self.session = session

    @datasource_call
    def get_patient(self, patient_id):
        return self.session.get(Patient, patient_id)

    @datasource_call
    def get_patients(self, patient_ids, hospital=None, active_only=True):
        """Resolve IDs to patients. Unknown IDs are simply missing from the result."""
        ids = [pid for pid in dict.fromkeys(patient_ids or []) if pid]
        if not ids:
            return {}
        query = self.session.query(Patient).filter(Patient.id.in_(ids))
        if hospital:
            query = query.filter(Patient.hospital == hospital)
        if active_only:
            query = query.filter(Patient.is_active.is_(True))
        return {p.id: p for p in query.all()}

    @datasource_call
    def count_urgent_open_tasks(self, patient_id):
        return self.session.query(func.count(Task.id)).filter(
            Task.patient_id == patient_id,
            Task.status.in_(OPEN_TASK_STATUSES),
            Task.priority == TASK_PRIORITY_URGENT,
        ).scalar() or 0

    @datasource_call
    def count_overdue_high_tasks(self, patient_id, now):
        return self.session.query(func.count(Task.id)).filter(
            Task.patient_id == patient_id,
            Task.status.in_(OPEN_TASK_STATUSES),
            Task.priority == TASK_PRIORITY_HIGH,
            Task.due_date.isnot(None),
            Task.due_date < now,
        ).scalar() or 0

    @datasource_call
    def count_notes_since(self, patient_id, since):
        return self.session.query(func.count(ClinicalNote.id)).filter(
            ClinicalNote.patient_id == patient_id,
            ClinicalNote.date >= since,
        ).scalar() or 0

    @datasource_call
    def latest_note(self, patient_id):
        return self.session.query(ClinicalNote).filter(
            ClinicalNote.patient_id == patient_id
        ).order_by(ClinicalNote.date.desc(), ClinicalNote.created_at.desc(), ClinicalNote.id.desc()).first()

    @datasource_call
    def get_tasks(self, task_ids):
        ids = [tid for tid in dict.fromkeys(task_ids or []) if tid]
        if not ids:
            return []
        return self.session.query(Task).filter(Task.id.in_(ids)).all()


class HandoverRepository:

    def __init__(self, session):
        self.session = session

    @datasource_call
    def get(self, handover_id):
        if not handover_id:
            return None
        return self.session.get(Handover, handover_id)

    def add(self, handover):
        self.session.add(handover)
        return handover

    @datasource_call
    def find_open_for_shift(self, hospital, service, shift_type, shift_date):
        return self.session.query(Handover).filter(
            Handover.hospital == hospital,
            Handover.service == service,
            Handover.shift_type == shift_type,
            Handover.shift_date == shift_date,
            Handover.status.in_(MUTABLE_HANDOVER_STATUSES),
        ).first()

    @datasource_call
    def find_active(self, hospital, day_start, day_end):
        return self.session.query(Handover).filter(
            Handover.hospital == hospital,
            Handover.status.in_(MUTABLE_HANDOVER_STATUSES),
            Handover.shift_date >= day_start,
            Handover.shift_date < day_end,
        ).order_by(Handover.created_at.desc(), Handover.id.desc()).first()

    @datasource_call
    def list(self, filters, page, limit):
        query = self.session.query(Handover)
        for column in ('hospital', 'service', 'status', 'created_by', 'shift_type', 'shift_date'):
            value = filters.get(column)
            if value is not None:
                query = query.filter(getattr(Handover, column) == value)
        total = query.count()
        items = query.order_by(Handover.created_at.desc(), Handover.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return items, total

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
