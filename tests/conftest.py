import datetime
import itertools

import pytest

from handover_pkg import create_app, db
from handover_pkg.handover.services import HandoverService
from handover_pkg.models import ClinicalNote, Patient, Task

NOW = datetime.datetime(2026, 3, 10, 12, 0, 0)
HOSPITAL = "Hospital General"
SERVICE = "Medicina Interna"


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def service(session, clock):
    return HandoverService(session, clock=clock)


class Factory:
    """Inserts clinical collaborators the engine only ever reads."""

    def __init__(self, session):
        self.session = session
        self._seq = itertools.count(1)

    def patient(self, patient_id=None, **kwargs):
        n = next(self._seq)
        data = dict(
            mrn=f"MRN-{n:04d}",
            first_name=f"Nombre{n}",
            last_name=f"Apellido{n}",
            hospital=HOSPITAL,
            service=SERVICE,
            bed_number=f"{100 + n}",
            diagnosis="Neumonía",
        )
        data.update(kwargs)
        if patient_id:
            data['id'] = patient_id
        patient = Patient(**data)
        self.session.add(patient)
        self.session.commit()
        return patient

    def task(self, patient=None, priority='MEDIUM', status='PENDING', due_date=None, **kwargs):
        n = next(self._seq)
        task = Task(
            patient_id=patient.id if patient is not None else None,
            title=kwargs.pop('title', f"Tarea {n}"),
            priority=priority,
            status=status,
            due_date=due_date,
            **kwargs,
        )
        self.session.add(task)
        self.session.commit()
        return task

    def note(self, patient, date=None, **kwargs):
        data = dict(
            patient_id=patient.id,
            date=date or NOW,
            created_at=date or NOW,
            chief_complaint="Disnea",
            assessment="Estable",
            plan="Continuar antibiótico",
        )
        data.update(kwargs)
        note = ClinicalNote(**data)
        self.session.add(note)
        self.session.commit()
        return note


@pytest.fixture
def factory(session):
    return Factory(session)


def handover_payload(**overrides):
    data = {
        'hospital': HOSPITAL,
        'service': SERVICE,
        'shift_type': 'MORNING',
        'shift_date': '2026-03-10',
        'start_time': '2026-03-10T08:00:00',
        'created_by': 'doctor-1',
    }
    data.update(overrides)
    return data


@pytest.fixture
def payload():
    return handover_payload
