from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..utils import isoformat_or_none, parse_iso_datetime


@dataclass(frozen=True)
class PatientRef:
    """The slice of a patient the detector and the summary need."""
    id: str
    first_name: str
    last_name: str
    bed_number: str
    hospital: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_model(cls, patient) -> "PatientRef":
        return cls(
            id=patient.id,
            first_name=patient.first_name,
            last_name=patient.last_name,
            bed_number=patient.bed_number,
            hospital=patient.hospital,
        )


@dataclass(frozen=True)
class PatientSignals:
    urgent_open_task_count: int = 0
    overdue_high_task_count: int = 0
    recent_note_count: int = 0


@dataclass(frozen=True)
class PatientSignalSummary:
    patient: PatientRef
    signals: PatientSignals

    @property
    def urgent_open_task_count(self) -> int:
        return self.signals.urgent_open_task_count

    @property
    def overdue_high_task_count(self) -> int:
        return self.signals.overdue_high_task_count

    @property
    def recent_note_count(self) -> int:
        return self.signals.recent_note_count


@dataclass
class SignalBatch:
    """Result of a batch signal fetch.

    ``failures`` maps a patient ID to the error that prevented reading its
    signals; those patients are absent from ``summaries``.
    """
    summaries: Dict[str, PatientSignalSummary] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


@dataclass(frozen=True)
class CriticalPatientEntry:
    patient_id: str
    patient_name: str
    bed_number: str
    reason: str
    urgent_tasks_count: int
    high_overdue_tasks_count: int
    last_soap_date: Optional[datetime] = None

    @property
    def pending_tasks_count(self) -> int:
        return self.urgent_tasks_count + self.high_overdue_tasks_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "bed_number": self.bed_number,
            "reason": self.reason,
            "pending_tasks_count": self.pending_tasks_count,
            "urgent_tasks_count": self.urgent_tasks_count,
            "high_overdue_tasks_count": self.high_overdue_tasks_count,
            "last_soap_date": isoformat_or_none(self.last_soap_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CriticalPatientEntry":
        # pending_tasks_count is derived; whatever the payload says is ignored.
        return cls(
            patient_id=str(data["patient_id"]),
            patient_name=str(data.get("patient_name") or ""),
            bed_number=str(data.get("bed_number") or ""),
            reason=str(data.get("reason") or ""),
            urgent_tasks_count=int(data.get("urgent_tasks_count") or 0),
            high_overdue_tasks_count=int(data.get("high_overdue_tasks_count") or 0),
            last_soap_date=parse_iso_datetime(data.get("last_soap_date")),
        )


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    description: str
    is_completed: bool = False
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "is_completed": self.is_completed,
            "completed_by": self.completed_by,
            "completed_at": isoformat_or_none(self.completed_at),
            "order": self.order,
        }


@dataclass(frozen=True)
class NoteSummary:
    id: str
    date: datetime
    chief_complaint: str
    assessment: str
    plan: str
    vital_signs: Optional[Dict[str, Any]] = None

    @classmethod
    def from_model(cls, note) -> "NoteSummary":
        return cls(
            id=note.id,
            date=note.date,
            chief_complaint=note.chief_complaint or "",
            assessment=note.assessment or "",
            plan=note.plan or "",
            vital_signs=dict(note.vital_signs) if note.vital_signs else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = isoformat_or_none(self.date)
        return data


@dataclass(frozen=True)
class TaskSummary:
    id: str
    title: str
    priority: str
    status: str
    patient_id: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    assignee_name: Optional[str] = None

    @classmethod
    def from_model(cls, task) -> "TaskSummary":
        return cls(
            id=task.id,
            title=task.title,
            priority=task.priority,
            status=task.status,
            patient_id=task.patient_id,
            description=task.description,
            due_date=task.due_date,
            assignee_name=task.assignee_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["due_date"] = isoformat_or_none(self.due_date)
        return data


@dataclass(frozen=True)
class PatientDetail:
    id: str
    first_name: str
    last_name: str
    medical_record_number: str
    bed_number: str
    room_number: Optional[str] = None
    diagnosis: Optional[str] = None
    allergies: Optional[str] = None
    blood_type: Optional[str] = None
    special_notes: Optional[str] = None
    admission_date: Optional[datetime] = None
    latest_note: Optional[NoteSummary] = None
    tasks: List[TaskSummary] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "medical_record_number": self.medical_record_number,
            "bed_number": self.bed_number,
            "room_number": self.room_number,
            "diagnosis": self.diagnosis,
            "allergies": self.allergies,
            "blood_type": self.blood_type,
            "special_notes": self.special_notes,
            "admission_date": isoformat_or_none(self.admission_date),
            "latest_note": self.latest_note.to_dict() if self.latest_note else None,
            "tasks": [t.to_dict() for t in self.tasks],
        }


@dataclass(frozen=True)
class AggregatedView:
    patients: List[PatientDetail] = field(default_factory=list)
    unassigned_tasks: List[TaskSummary] = field(default_factory=list)
    critical_patients: List[CriticalPatientEntry] = field(default_factory=list)
    general_notes: Optional[str] = None

    @property
    def task_count(self) -> int:
        return sum(len(p.tasks) for p in self.patients) + len(self.unassigned_tasks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patients": [p.to_dict() for p in self.patients],
            "unassigned_tasks": [t.to_dict() for t in self.unassigned_tasks],
            "critical_patients": [c.to_dict() for c in self.critical_patients],
            "general_notes": self.general_notes,
        }


@dataclass(frozen=True)
class GeneratedSummary:
    text: str
    patient_count: int
    task_count: int
    critical_count: int
