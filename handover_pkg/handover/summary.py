# handover_pkg/handover/summary.py
"""
Handover summary text.

``generate_summary`` never reads the clock or the datastore: identical input
produces byte-identical text, so a stored summary can be regenerated and
diffed.
"""
from .types import GeneratedSummary

_DATE_FORMAT = "%Y-%m-%d %H:%M"

_PRIORITY_MARKERS = {
    "URGENT": "[!!!]",
    "HIGH": "[!!]",
    "MEDIUM": "[!]",
    "LOW": "[-]",
}

# (payload key, label, unit)
_VITAL_SIGNS = (
    ("blood_pressure", "PA", " mmHg"),
    ("heart_rate", "FC", " lpm"),
    ("temperature", "Tª", " °C"),
    ("oxygen_saturation", "SatO2", "%"),
    ("respiratory_rate", "FR", " rpm"),
)


def _fmt_date(value):
    return value.strftime(_DATE_FORMAT) if value else "-"


def _priority_marker(priority):
    return _PRIORITY_MARKERS.get(priority, "[?]")


def _critical_section(critical_patients):
    lines = ["## Pacientes Críticos", ""]
    for entry in critical_patients:
        lines.append(f"### Cama {entry.bed_number} - {entry.patient_name}")
        lines.append(f"- **Razón:** {entry.reason}")
        if entry.last_soap_date:
            lines.append(f"- **Última nota:** {_fmt_date(entry.last_soap_date)}")
        lines.append(f"- **Tareas pendientes:** {entry.pending_tasks_count}")
        lines.append("")
    return lines


def _vital_signs_lines(vital_signs):
    lines = []
    for key, label, unit in _VITAL_SIGNS:
        value = vital_signs.get(key)
        if value not in (None, ""):
            lines.append(f"- {label}: {value}{unit}")
    return lines


def _patient_section(patient):
    lines = [f"### Cama {patient.bed_number} - {patient.full_name}"]
    lines.append(f"- **NHC:** {patient.medical_record_number}")
    lines.append(f"- **Diagnóstico:** {patient.diagnosis or '-'}")
    if patient.allergies:
        lines.append(f"- **Alergias:** {patient.allergies}")
    if patient.blood_type:
        lines.append(f"- **Grupo sanguíneo:** {patient.blood_type}")
    if patient.room_number:
        lines.append(f"- **Habitación:** {patient.room_number}")
    if patient.special_notes:
        lines.append(f"- **Notas especiales:** {patient.special_notes}")

    note = patient.latest_note
    if note:
        lines.extend(["", f"#### Última Nota SOAP ({_fmt_date(note.date)})"])
        lines.append(f"**Motivo:** {note.chief_complaint}")
        vitals = _vital_signs_lines(note.vital_signs or {})
        if vitals:
            lines.extend(["", "**Constantes Vitales:**"])
            lines.extend(vitals)
        lines.extend(["", f"**Evaluación:** {note.assessment}"])
        lines.extend(["", f"**Plan:** {note.plan}"])

    if patient.tasks:
        lines.extend(["", "#### Tareas"])
        for task in patient.tasks:
            lines.extend(_task_lines(task))

    lines.extend(["", "---", ""])
    return lines


def _task_lines(task):
    line = f"{_priority_marker(task.priority)} **{task.title}** ({task.priority}, {task.status})"
    if task.due_date:
        line += f" vence {_fmt_date(task.due_date)}"
    lines = [line]
    if task.assignee_name:
        lines.append(f"  - Asignado a: {task.assignee_name}")
    return lines


def generate_summary(view, critical_patients=None, generated_at=None):
    """
    Render the aggregated view and the critical roster as one text block.

    Args:
        view: AggregatedView from the aggregator.
        critical_patients: roster to render; defaults to ``view.critical_patients``.
        generated_at: optional timestamp printed in the header. Passing it in
            (rather than reading the clock) keeps the output reproducible.
    """
    critical = list(view.critical_patients if critical_patients is None else critical_patients)

    lines = ["# Resumen de Guardia", ""]
    if generated_at is not None:
        lines.extend([f"**Fecha de generación:** {_fmt_date(generated_at)}", ""])

    lines.append("## Estadísticas")
    lines.append(f"- **Pacientes:** {len(view.patients)}")
    lines.append(f"- **Tareas:** {view.task_count}")
    lines.append(f"- **Pacientes críticos:** {len(critical)}")
    lines.append("")

    if critical:
        lines.extend(_critical_section(critical))

    lines.extend(["## Pacientes Incluidos", ""])
    if not view.patients:
        lines.extend(["_Sin pacientes_", ""])
    for patient in view.patients:
        lines.extend(_patient_section(patient))

    if view.unassigned_tasks:
        lines.extend(["## Tareas Generales", ""])
        for task in view.unassigned_tasks:
            lines.extend(_task_lines(task))
        lines.append("")

    if view.general_notes:
        lines.extend(["## Notas Generales", "", view.general_notes.strip(), ""])

    return GeneratedSummary(
        text="\n".join(lines),
        patient_count=len(view.patients),
        task_count=view.task_count,
        critical_count=len(critical),
    )
