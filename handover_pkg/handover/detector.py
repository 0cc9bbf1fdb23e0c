# handover_pkg/handover/detector.py
"""
Critical-patient detection.

Pure functions: signal summaries in, ranked roster out. No datastore access
and no clock reads, so the same input always yields the same roster.
"""
from .types import CriticalPatientEntry

REASON_SEPARATOR = " • "
NO_RECENT_NOTE_REASON = "Sin nota SOAP en 24h"


def detect(summaries, now):
    """
    Build the critical-patient roster.

    Args:
        summaries: iterable of PatientSignalSummary. ``None`` entries stand for
            patients whose signals could not be fetched and are treated as
            not critical.
        now: the reference timestamp used for ``last_soap_date``.

    Returns:
        A list of CriticalPatientEntry sorted by pending task count descending,
        ties broken by patient ID ascending.
    """
    roster = []
    seen = set()
    for summary in summaries or []:
        if summary is None or summary.patient.id in seen:
            continue
        seen.add(summary.patient.id)
        entry = evaluate(summary, now)
        if entry is not None:
            roster.append(entry)
    return rank(roster)


def evaluate(summary, now):
    """Apply the rules to one patient; None when nothing fired."""
    reasons = []
    reasons.extend(_check_urgent_tasks(summary))
    reasons.extend(_check_overdue_high_tasks(summary))
    reasons.extend(_check_recent_note(summary))
    if not reasons:
        return None

    patient = summary.patient
    return CriticalPatientEntry(
        patient_id=patient.id,
        patient_name=patient.full_name,
        bed_number=patient.bed_number,
        reason=REASON_SEPARATOR.join(reasons),
        urgent_tasks_count=summary.urgent_open_task_count,
        high_overdue_tasks_count=summary.overdue_high_task_count,
        # Stand-in for "has a recent note", not the note's own timestamp.
        last_soap_date=now if summary.recent_note_count > 0 else None,
    )


def rank(entries):
    return sorted(entries, key=lambda e: (-e.pending_tasks_count, e.patient_id))


def _check_urgent_tasks(summary):
    count = summary.urgent_open_task_count
    if count > 0:
        return [f"{count} tarea(s) URGENTE"]
    return []


def _check_overdue_high_tasks(summary):
    count = summary.overdue_high_task_count
    if count > 0:
        return [f"{count} tarea(s) HIGH vencida(s)"]
    return []


def _check_recent_note(summary):
    if summary.recent_note_count == 0:
        return [NO_RECENT_NOTE_REASON]
    return []
