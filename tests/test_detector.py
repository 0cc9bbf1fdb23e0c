import datetime

from handover_pkg.handover.detector import detect, evaluate
from handover_pkg.handover.types import PatientRef, PatientSignals, PatientSignalSummary

NOW = datetime.datetime(2026, 3, 10, 12, 0, 0)


def summary(patient_id, urgent=0, overdue=0, notes=1, bed="1"):
    return PatientSignalSummary(
        patient=PatientRef(id=patient_id, first_name="Ana", last_name=patient_id, bed_number=bed),
        signals=PatientSignals(
            urgent_open_task_count=urgent,
            overdue_high_task_count=overdue,
            recent_note_count=notes,
        ),
    )


def test_urgent_tasks_with_recent_note():
    roster = detect([summary("P", urgent=2, notes=1)], NOW)

    assert len(roster) == 1
    entry = roster[0]
    assert entry.reason == "2 tarea(s) URGENTE"
    assert entry.pending_tasks_count == 2
    assert entry.urgent_tasks_count == 2
    assert entry.high_overdue_tasks_count == 0
    assert entry.last_soap_date == NOW


def test_overdue_high_without_recent_note():
    roster = detect([summary("Q", overdue=1, notes=0)], NOW)

    entry = roster[0]
    assert entry.reason == "1 tarea(s) HIGH vencida(s) • Sin nota SOAP en 24h"
    assert entry.pending_tasks_count == 1
    assert entry.last_soap_date is None


def test_reasons_follow_rule_order():
    entry = evaluate(summary("X", urgent=1, overdue=3, notes=0), NOW)
    assert entry.reason == "1 tarea(s) URGENTE • 3 tarea(s) HIGH vencida(s) • Sin nota SOAP en 24h"
    assert entry.pending_tasks_count == 4


def test_missing_note_alone_is_critical_with_zero_pending():
    roster = detect([summary("N", notes=0)], NOW)
    assert [e.patient_id for e in roster] == ["N"]
    assert roster[0].pending_tasks_count == 0
    assert roster[0].reason == "Sin nota SOAP en 24h"


def test_patient_with_no_fired_rule_is_excluded():
    assert detect([summary("OK", notes=3)], NOW) == []


def test_roster_membership_matches_rules():
    cases = []
    for urgent in (0, 2):
        for overdue in (0, 1):
            for notes in (0, 1):
                cases.append(summary(f"p-{urgent}-{overdue}-{notes}", urgent, overdue, notes))

    roster_ids = {e.patient_id for e in detect(cases, NOW)}
    expected = {
        s.patient.id for s in cases
        if s.urgent_open_task_count > 0 or s.overdue_high_task_count > 0 or s.recent_note_count == 0
    }
    assert roster_ids == expected


def test_count_invariant_holds_for_every_entry():
    roster = detect([summary("a", 3, 2, 0), summary("b", 0, 4, 1), summary("c", 1, 0, 1)], NOW)
    for entry in roster:
        assert entry.pending_tasks_count == entry.urgent_tasks_count + entry.high_overdue_tasks_count
        assert entry.to_dict()["pending_tasks_count"] == entry.pending_tasks_count


def test_ties_break_by_patient_id():
    roster = detect([summary("P", urgent=2), summary("R", overdue=2), summary("A", urgent=1)], NOW)
    # P and R tie on 2 pending; P sorts before R alphabetically.
    assert [e.patient_id for e in roster] == ["P", "R", "A"]

    roster = detect([summary("P", urgent=2), summary("B", urgent=2)], NOW)
    assert [e.patient_id for e in roster] == ["B", "P"]


def test_ranking_is_non_increasing():
    roster = detect([summary(f"p{i}", urgent=i % 4, overdue=i % 3, notes=0) for i in range(12)], NOW)
    counts = [e.pending_tasks_count for e in roster]
    assert counts == sorted(counts, reverse=True)


def test_detect_is_deterministic():
    inputs = [summary("z", 1, 1, 0), summary("m", 2, 0, 1), summary("a", 0, 2, 0), summary("q", 0, 0, 0)]
    first = detect(inputs, NOW)
    second = detect(list(reversed(inputs)), NOW)
    assert first == second
    assert [e.reason for e in first] == [e.reason for e in second]


def test_missing_summaries_are_not_critical():
    roster = detect([None, summary("P", urgent=1), None], NOW)
    assert [e.patient_id for e in roster] == ["P"]


def test_empty_input_gives_empty_roster():
    assert detect([], NOW) == []
    assert detect(None, NOW) == []
