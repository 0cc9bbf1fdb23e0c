import datetime

import pytest

from handover_pkg.handover.aggregator import HandoverAggregator
from handover_pkg.handover.repository import ClinicalRepository

from .conftest import NOW

HOUR = datetime.timedelta(hours=1)


@pytest.fixture
def aggregator(session):
    return HandoverAggregator(ClinicalRepository(session))


def test_patients_get_latest_note_and_their_tasks(aggregator, factory):
    patient = factory.patient(bed_number="12")
    factory.note(patient, date=NOW - 10 * HOUR, chief_complaint="Fiebre")
    latest = factory.note(patient, date=NOW - HOUR, chief_complaint="Disnea",
                          vital_signs={"heart_rate": 98, "oxygen_saturation": 91})
    urgent = factory.task(patient, priority='URGENT', title="Gasometría")
    low = factory.task(patient, priority='LOW', title="Dieta")

    view = aggregator.aggregate([patient.id], [low.id, urgent.id])

    assert len(view.patients) == 1
    detail = view.patients[0]
    assert detail.latest_note.id == latest.id
    assert detail.latest_note.vital_signs["oxygen_saturation"] == 91
    assert [t.id for t in detail.tasks] == [urgent.id, low.id]
    assert view.unassigned_tasks == []


def test_unmatched_tasks_are_kept_as_unassigned(aggregator, factory):
    included = factory.patient()
    outside = factory.patient()
    general = factory.task(None, priority='HIGH', title="Revisar carro de paradas")
    foreign = factory.task(outside, priority='MEDIUM')
    own = factory.task(included, priority='MEDIUM')

    view = aggregator.aggregate([included.id], [general.id, foreign.id, own.id])

    assert [t.id for t in view.patients[0].tasks] == [own.id]
    assert {t.id for t in view.unassigned_tasks} == {general.id, foreign.id}
    assert view.task_count == 3


def test_tasks_not_in_the_handover_are_ignored(aggregator, factory):
    patient = factory.patient()
    factory.task(patient, priority='URGENT')

    view = aggregator.aggregate([patient.id], [])
    assert view.patients[0].tasks == []


def test_unresolvable_and_inactive_patients_are_dropped(aggregator, factory):
    active = factory.patient()
    inactive = factory.patient(is_active=False)

    view = aggregator.aggregate([active.id, inactive.id, "gone"], [])

    assert [p.id for p in view.patients] == [active.id]


def test_patient_without_notes_has_no_latest_note(aggregator, factory):
    patient = factory.patient()
    view = aggregator.aggregate([patient.id], [])
    assert view.patients[0].latest_note is None


def test_ordering_does_not_depend_on_input_order(aggregator, factory):
    a = factory.patient(bed_number="03")
    b = factory.patient(bed_number="01")
    c = factory.patient(bed_number="02")

    first = aggregator.aggregate([a.id, b.id, c.id], [])
    second = aggregator.aggregate([c.id, a.id, b.id], [])

    assert [p.bed_number for p in first.patients] == ["01", "02", "03"]
    assert first == second
