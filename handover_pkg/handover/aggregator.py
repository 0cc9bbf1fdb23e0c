# handover_pkg/handover/aggregator.py
from ..models import TASK_PRIORITIES
from .types import AggregatedView, NoteSummary, PatientDetail, TaskSummary

# URGENT first, LOW last; unknown priorities sort after LOW.
_PRIORITY_RANK = {p: i for i, p in enumerate(reversed(TASK_PRIORITIES))}


def task_sort_key(task):
    return (
        _PRIORITY_RANK.get(task.priority, len(_PRIORITY_RANK)),
        task.due_date is None,
        task.due_date.isoformat() if task.due_date else "",
        task.id,
    )


def _patient_sort_key(patient):
    return (patient.bed_number or "", patient.id)


class HandoverAggregator:
    """
    Denormalized view of a handover's references.

    Each included patient gets its latest clinical note and the included tasks
    that belong to it. Tasks with no patient, or with a patient outside the
    handover, land in ``unassigned_tasks``. Patient IDs that no longer resolve
    (deleted or deactivated) are dropped without error.
    """

    def __init__(self, repository):
        self.repository = repository

    def aggregate(self, patient_ids, task_ids, critical_patients=(), general_notes=None):
        patients = self.repository.get_patients(patient_ids)
        tasks = [TaskSummary.from_model(t) for t in self.repository.get_tasks(task_ids)]

        tasks_by_patient = {}
        unassigned = []
        for task in tasks:
            if task.patient_id and task.patient_id in patients:
                tasks_by_patient.setdefault(task.patient_id, []).append(task)
            else:
                unassigned.append(task)

        details = []
        for patient in sorted(patients.values(), key=_patient_sort_key):
            note = self.repository.latest_note(patient.id)
            details.append(PatientDetail(
                id=patient.id,
                first_name=patient.first_name,
                last_name=patient.last_name,
                medical_record_number=patient.mrn,
                bed_number=patient.bed_number,
                room_number=patient.room_number,
                diagnosis=patient.diagnosis,
                allergies=patient.allergies,
                blood_type=patient.blood_type,
                special_notes=patient.special_notes,
                admission_date=patient.admission_date,
                latest_note=NoteSummary.from_model(note) if note else None,
                tasks=sorted(tasks_by_patient.get(patient.id, []), key=task_sort_key),
            ))

        return AggregatedView(
            patients=details,
            unassigned_tasks=sorted(unassigned, key=task_sort_key),
            critical_patients=list(critical_patients or []),
            general_notes=general_notes,
        )
