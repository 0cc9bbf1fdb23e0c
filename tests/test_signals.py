import datetime

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from handover_pkg.errors import DataSourceError
from handover_pkg.handover.repository import ClinicalRepository, datasource_call
from handover_pkg.handover.detector import NO_RECENT_NOTE_REASON
from handover_pkg.handover.signals import NOTE_WINDOW, ClinicalSignalReader

from .conftest import NOW

HOUR = datetime.timedelta(hours=1)


@pytest.fixture
def reader(session):
    return ClinicalSignalReader(ClinicalRepository(session))


def test_urgent_count_only_includes_open_tasks(reader, factory):
    patient = factory.patient()
    factory.task(patient, priority='URGENT', status='PENDING')
    factory.task(patient, priority='URGENT', status='IN_PROGRESS')
    factory.task(patient, priority='URGENT', status='COMPLETED')
    factory.task(patient, priority='URGENT', status='CANCELLED')
    factory.task(patient, priority='HIGH', status='PENDING')

    signals = reader.read(patient.id, NOW)
    assert signals.urgent_open_task_count == 2


def test_overdue_high_requires_past_due_date(reader, factory):
    patient = factory.patient()
    factory.task(patient, priority='HIGH', due_date=NOW - HOUR)
    factory.task(patient, priority='HIGH', status='IN_PROGRESS', due_date=NOW - 5 * HOUR)
    factory.task(patient, priority='HIGH', due_date=NOW + HOUR)
    factory.task(patient, priority='HIGH', due_date=None)
    factory.task(patient, priority='HIGH', status='COMPLETED', due_date=NOW - HOUR)
    factory.task(patient, priority='URGENT', due_date=NOW - HOUR)

    signals = reader.read(patient.id, NOW)
    assert signals.overdue_high_task_count == 2
    assert signals.urgent_open_task_count == 1


def test_recent_notes_use_a_24_hour_window(reader, factory):
    patient = factory.patient()
    factory.note(patient, date=NOW - 2 * HOUR)
    factory.note(patient, date=NOW - 24 * HOUR)
    factory.note(patient, date=NOW - 25 * HOUR)

    assert reader.read(patient.id, NOW).recent_note_count == 2


def test_note_window_matches_the_reason_text():
    assert NOTE_WINDOW == 24 * HOUR
    assert NO_RECENT_NOTE_REASON == "Sin nota SOAP en 24h"


def test_counts_are_scoped_to_the_patient(reader, factory):
    patient = factory.patient()
    other = factory.patient()
    factory.task(other, priority='URGENT')
    factory.task(None, priority='URGENT')
    factory.note(other, date=NOW)

    signals = reader.read(patient.id, NOW)
    assert signals.urgent_open_task_count == 0
    assert signals.recent_note_count == 0


def test_fetch_signals_skips_unknown_inactive_and_foreign_patients(reader, factory):
    kept = factory.patient()
    inactive = factory.patient(is_active=False)
    foreign = factory.patient(hospital="Otro Hospital")

    batch = reader.fetch_signals(
        [kept.id, inactive.id, foreign.id, "missing", kept.id], NOW, hospital=kept.hospital
    )

    assert list(batch.summaries) == [kept.id]
    assert batch.summaries[kept.id].patient.bed_number == kept.bed_number
    assert not batch.has_failures


def test_fetch_signals_with_no_ids(reader):
    batch = reader.fetch_signals([], NOW)
    assert batch.summaries == {}
    assert batch.failures == {}


class FlakyRepository(ClinicalRepository):
    def __init__(self, session, failing_id):
        super().__init__(session)
        self.failing_id = failing_id

    def count_notes_since(self, patient_id, since):
        if patient_id == self.failing_id:
            raise DataSourceError("notes store unavailable")
        return super().count_notes_since(patient_id, since)


def test_a_failing_patient_does_not_abort_the_batch(session, factory):
    ok = factory.patient()
    broken = factory.patient()
    reader = ClinicalSignalReader(FlakyRepository(session, broken.id))

    batch = reader.fetch_signals([ok.id, broken.id], NOW)

    assert list(batch.summaries) == [ok.id]
    assert isinstance(batch.failures[broken.id], DataSourceError)


def test_read_propagates_datasource_errors(session, factory):
    broken = factory.patient()
    reader = ClinicalSignalReader(FlakyRepository(session, broken.id))

    with pytest.raises(DataSourceError):
        reader.read(broken.id, NOW)


class BrokenQueryRepository(ClinicalRepository):
    def __init__(self, session, failing_id):
        super().__init__(session)
        self.failing_id = failing_id

    @datasource_call
    def count_urgent_open_tasks(self, patient_id):
        if patient_id == self.failing_id:
            self.session.execute(text("SELECT count(*) FROM task_archive"))
        return super().count_urgent_open_tasks(patient_id)


def test_a_database_error_is_rolled_back_for_that_patient_only(session, factory):
    broken = factory.patient()
    ok = factory.patient()
    factory.task(ok, priority='URGENT')
    reader = ClinicalSignalReader(BrokenQueryRepository(session, broken.id))

    batch = reader.fetch_signals([broken.id, ok.id], NOW)

    assert isinstance(batch.failures[broken.id].__cause__, SQLAlchemyError)
    assert batch.summaries[ok.id].urgent_open_task_count == 1
    # The enclosing transaction is still usable afterwards.
    assert session.execute(text("SELECT 1")).scalar() == 1
    session.commit()
