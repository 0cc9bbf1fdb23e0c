from . import db # Imports the db instance from __init__.py
import uuid

from .utils import isoformat_or_none, utcnow


# --- Enumerated values (stored as plain strings) ---

TASK_STATUS_PENDING = 'PENDING'
TASK_STATUS_IN_PROGRESS = 'IN_PROGRESS'
TASK_STATUS_COMPLETED = 'COMPLETED'
TASK_STATUS_CANCELLED = 'CANCELLED'
TASK_STATUSES = (TASK_STATUS_PENDING, TASK_STATUS_IN_PROGRESS, TASK_STATUS_COMPLETED, TASK_STATUS_CANCELLED)
OPEN_TASK_STATUSES = (TASK_STATUS_PENDING, TASK_STATUS_IN_PROGRESS)

TASK_PRIORITY_LOW = 'LOW'
TASK_PRIORITY_MEDIUM = 'MEDIUM'
TASK_PRIORITY_HIGH = 'HIGH'
TASK_PRIORITY_URGENT = 'URGENT'
TASK_PRIORITIES = (TASK_PRIORITY_LOW, TASK_PRIORITY_MEDIUM, TASK_PRIORITY_HIGH, TASK_PRIORITY_URGENT)

SHIFT_MORNING = 'MORNING'
SHIFT_AFTERNOON = 'AFTERNOON'
SHIFT_NIGHT = 'NIGHT'
SHIFT_TYPES = (SHIFT_MORNING, SHIFT_AFTERNOON, SHIFT_NIGHT)

HANDOVER_DRAFT = 'DRAFT'
HANDOVER_IN_PROGRESS = 'IN_PROGRESS'
HANDOVER_FINALIZED = 'FINALIZED'
HANDOVER_STATUSES = (HANDOVER_DRAFT, HANDOVER_IN_PROGRESS, HANDOVER_FINALIZED)
MUTABLE_HANDOVER_STATUSES = (HANDOVER_DRAFT, HANDOVER_IN_PROGRESS)


# --- Clinical collaborators (read-only from the handover engine) ---

class Patient(db.Model):
    __tablename__ = 'patients'
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    mrn = db.Column(db.String(50), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    hospital = db.Column(db.String(150), nullable=False, index=True)
    service = db.Column(db.String(100), nullable=True)
    ward = db.Column(db.String(100), nullable=True)
    bed_number = db.Column(db.String(20), nullable=False)
    room_number = db.Column(db.String(20), nullable=True)
    diagnosis = db.Column(db.Text, nullable=True)
    allergies = db.Column(db.Text, nullable=True)
    blood_type = db.Column(db.String(10), nullable=True)
    special_notes = db.Column(db.Text, nullable=True)
    admission_date = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    notes = db.relationship('ClinicalNote', backref='patient', lazy='dynamic')
    tasks = db.relationship(
        'Task',
        foreign_keys='Task.patient_id',
        backref='patient',
        lazy='dynamic',
        order_by="desc(Task.created_at)"
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f'<Patient MRN: {self.mrn} - {self.first_name} {self.last_name}>'


class Task(db.Model):
    __tablename__ = 'tasks'
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Some tasks are not patient-scoped (ward chores, general follow-ups).
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=True, index=True)
    hospital = db.Column(db.String(150), nullable=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default=TASK_STATUS_PENDING, nullable=False, index=True)
    priority = db.Column(db.String(20), default=TASK_PRIORITY_MEDIUM, nullable=False, index=True)
    due_date = db.Column(db.DateTime, nullable=True)
    assignee_id = db.Column(db.String(36), nullable=True)
    assignee_name = db.Column(db.String(150), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id, "title": self.title, "description": self.description,
            "patient_id": self.patient_id,
            "status": self.status, "priority": self.priority,
            "due_date": isoformat_or_none(self.due_date),
            "assignee_id": self.assignee_id,
            "assignee_name": self.assignee_name,
        }

    def __repr__(self):
        return f'<Task {self.id} - {self.title}>'


class ClinicalNote(db.Model):
    """A SOAP note. ``vital_signs`` is an optional structured payload."""
    __tablename__ = 'clinical_notes'
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=False, index=True)
    author_id = db.Column(db.String(36), nullable=True)
    date = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    chief_complaint = db.Column(db.Text, nullable=False, default='')
    subjective = db.Column(db.Text, nullable=True)
    objective = db.Column(db.Text, nullable=True)
    assessment = db.Column(db.Text, nullable=False, default='')
    plan = db.Column(db.Text, nullable=False, default='')
    vital_signs = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f'<ClinicalNote {self.id} patient={self.patient_id}>'


# --- Handover aggregate ---

class Handover(db.Model):
    __tablename__ = 'handovers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    hospital = db.Column(db.String(150), nullable=False, index=True)
    service = db.Column(db.String(100), nullable=False)
    shift_type = db.Column(db.String(20), nullable=False)
    shift_date = db.Column(db.DateTime, nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=HANDOVER_DRAFT, index=True)

    # ID sets are stored as JSON lists; always reassign, never mutate in place.
    included_patient_ids = db.Column(db.JSON, nullable=False, default=list)
    included_task_ids = db.Column(db.JSON, nullable=False, default=list)
    checklist_items = db.Column(db.JSON, nullable=False, default=list)
    critical_patients = db.Column(db.JSON, nullable=False, default=list)

    general_notes = db.Column(db.Text, nullable=True)
    generated_summary = db.Column(db.Text, nullable=True)

    # Bumped by the mapper on every UPDATE; a stale write raises StaleDataError.
    version = db.Column(db.Integer, nullable=False)

    finalized_at = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.String(36), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_finalized(self):
        return self.status == HANDOVER_FINALIZED

    def to_dict(self):
        return {
            "id": self.id,
            "hospital": self.hospital,
            "service": self.service,
            "shift_type": self.shift_type,
            "shift_date": isoformat_or_none(self.shift_date),
            "start_time": isoformat_or_none(self.start_time),
            "end_time": isoformat_or_none(self.end_time),
            "status": self.status,
            "included_patient_ids": list(self.included_patient_ids or []),
            "included_task_ids": list(self.included_task_ids or []),
            "checklist_items": list(self.checklist_items or []),
            "critical_patients": list(self.critical_patients or []),
            "general_notes": self.general_notes,
            "generated_summary": self.generated_summary,
            "version": self.version,
            "finalized_at": isoformat_or_none(self.finalized_at),
            "created_by": self.created_by,
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
        }

    def __repr__(self):
        return f'<Handover {self.id} {self.hospital}/{self.service} {self.shift_type} v{self.version} {self.status}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'
    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(100), nullable=False, index=True)
    target_model = db.Column(db.String(100), nullable=True)
    target_id = db.Column(db.String(36), nullable=True, index=True)
    change_details = db.Column(db.JSON, nullable=True)
    user_id = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "target_model": self.target_model,
            "target_id": self.target_id,
            "change_details": self.change_details,
            "user_id": self.user_id,
            "created_at": isoformat_or_none(self.created_at),
        }
