# handover_pkg/handover/signals.py
import datetime

from ..errors import DataSourceError
from ..utils import get_logger
from .types import PatientRef, PatientSignals, PatientSignalSummary, SignalBatch

# A patient without a clinical note inside this window is flagged.
NOTE_WINDOW = datetime.timedelta(hours=24)


class ClinicalSignalReader:
    """
    Read-only queries behind critical-patient detection.

    ``read`` returns the three counts for one patient; ``fetch_signals`` is the
    batch entry point the detector is fed from. Errors are never retried here.
    """

    def __init__(self, repository):
        self.repository = repository

    def read(self, patient_id, now):
        # The three counts are independent; none relies on another's result.
        return PatientSignals(
            urgent_open_task_count=self.repository.count_urgent_open_tasks(patient_id),
            overdue_high_task_count=self.repository.count_overdue_high_tasks(patient_id, now),
            recent_note_count=self.repository.count_notes_since(patient_id, now - NOTE_WINDOW),
        )

    def fetch_signals(self, patient_ids, now, hospital=None):
        """
        Read signals for every resolvable patient in ``patient_ids``.

        Unknown, inactive or other-hospital patients are skipped. A
        DataSourceError for one patient is recorded in ``failures`` and the
        batch carries on with the rest.
        """
        batch = SignalBatch()
        ids = [pid for pid in dict.fromkeys(patient_ids or []) if pid]
        if not ids:
            return batch

        patients = self.repository.get_patients(ids, hospital=hospital)
        for patient_id in ids:
            patient = patients.get(patient_id)
            if patient is None:
                continue
            try:
                # Each patient reads under its own savepoint so a failed read rolls back alone.
                with self.repository.session.begin_nested():
                    signals = self.read(patient_id, now)
            except DataSourceError as e:
                get_logger(__name__).warning(f"Signal fetch failed for patient {patient_id}: {e}")
                batch.failures[patient_id] = e
                continue
            batch.summaries[patient_id] = PatientSignalSummary(
                patient=PatientRef.from_model(patient),
                signals=signals,
            )
        return batch
