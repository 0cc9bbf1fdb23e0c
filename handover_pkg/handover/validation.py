# handover_pkg/handover/validation.py
"""Input checks for handover create / update / list calls."""
from ..errors import ValidationError
from ..models import HANDOVER_STATUSES, MUTABLE_HANDOVER_STATUSES, SHIFT_TYPES
from ..utils import parse_iso_datetime
from .types import ChecklistItem, CriticalPatientEntry

CREATE_REQUIRED_FIELDS = ('hospital', 'service', 'shift_type', 'shift_date', 'created_by')

ID_SET_FIELDS = (
    'included_patient_ids', 'included_task_ids',
    'add_patient_ids', 'remove_patient_ids',
    'add_task_ids', 'remove_task_ids',
)
UPDATABLE_FIELDS = ID_SET_FIELDS + (
    'checklist_items', 'general_notes', 'end_time', 'critical_patients', 'status',
)


def _require_text(data, field):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field}: field is required")
    return value.strip()


def _datetime_field(data, field, required=False):
    raw = data.get(field)
    if raw is None or raw == '':
        if required:
            raise ValidationError(f"{field}: field is required")
        return None
    value = parse_iso_datetime(raw)
    if value is None:
        raise ValidationError(f"{field}: invalid date/time '{raw}'")
    return value


def _shift_type(value):
    if value not in SHIFT_TYPES:
        raise ValidationError(f"shift_type: must be one of {', '.join(SHIFT_TYPES)}")
    return value


def _mutable_status(value):
    if value not in MUTABLE_HANDOVER_STATUSES:
        raise ValidationError(
            f"status: must be one of {', '.join(MUTABLE_HANDOVER_STATUSES)}; use finalize to close a handover"
        )
    return value


def clean_id_list(value, field):
    """List of non-empty string IDs, duplicates dropped, first occurrence kept."""
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError(f"{field}: must be a list of IDs")
    if isinstance(value, (set, frozenset)):
        value = sorted(value)
    ids = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"{field}: IDs must be non-empty strings")
        ids.append(item.strip())
    return list(dict.fromkeys(ids))


def clean_checklist(items):
    if not isinstance(items, (list, tuple)):
        raise ValidationError("checklist_items: must be a list")
    cleaned = []
    seen = set()
    for raw in items:
        if isinstance(raw, ChecklistItem):
            item = raw
        elif isinstance(raw, dict):
            item_id = raw.get('id')
            if not isinstance(item_id, str) or not item_id.strip():
                raise ValidationError("checklist_items: every item needs an id")
            description = raw.get('description')
            if not isinstance(description, str) or not description.strip():
                raise ValidationError(f"checklist_items: item {item_id} needs a description")
            order = raw.get('order', 0)
            if isinstance(order, bool) or not isinstance(order, int) or order < 0:
                raise ValidationError(f"checklist_items: item {item_id} has an invalid order")
            is_completed = raw.get('is_completed', False)
            if not isinstance(is_completed, bool):
                raise ValidationError(f"checklist_items: item {item_id} is_completed must be a boolean")
            item = ChecklistItem(
                id=item_id.strip(),
                description=description.strip(),
                is_completed=is_completed,
                completed_by=raw.get('completed_by'),
                completed_at=_datetime_field(raw, 'completed_at'),
                order=order,
            )
        else:
            raise ValidationError("checklist_items: items must be objects")
        if item.id in seen:
            raise ValidationError(f"checklist_items: duplicate item id {item.id}")
        seen.add(item.id)
        cleaned.append(item)
    # sorted() is stable, so equal orders keep the caller's sequence.
    return sorted(cleaned, key=lambda i: i.order)


def clean_critical_patients(entries):
    if not isinstance(entries, (list, tuple)):
        raise ValidationError("critical_patients: must be a list")
    cleaned = []
    for raw in entries:
        if isinstance(raw, CriticalPatientEntry):
            cleaned.append(raw)
        elif isinstance(raw, dict) and raw.get('patient_id'):
            try:
                cleaned.append(CriticalPatientEntry.from_dict(raw))
            except (TypeError, ValueError) as e:
                raise ValidationError(f"critical_patients: invalid entry ({e})")
        else:
            raise ValidationError("critical_patients: every entry needs a patient_id")
    return cleaned


def validate_create(data):
    if not isinstance(data, dict) or not data:
        raise ValidationError("No handover data provided")
    missing = [f for f in CREATE_REQUIRED_FIELDS if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cleaned = {
        'hospital': _require_text(data, 'hospital'),
        'service': _require_text(data, 'service'),
        'shift_type': _shift_type(data.get('shift_type')),
        'shift_date': _datetime_field(data, 'shift_date', required=True),
        'created_by': str(data.get('created_by')).strip(),
        'start_time': _datetime_field(data, 'start_time'),
        'end_time': _datetime_field(data, 'end_time'),
        'status': _mutable_status(data.get('status') or MUTABLE_HANDOVER_STATUSES[0]),
        'general_notes': data.get('general_notes'),
        'included_patient_ids': clean_id_list(data.get('included_patient_ids'), 'included_patient_ids'),
        'included_task_ids': clean_id_list(data.get('included_task_ids'), 'included_task_ids'),
    }
    if cleaned['start_time'] and cleaned['end_time'] and cleaned['end_time'] < cleaned['start_time']:
        raise ValidationError("end_time: must not be before start_time")
    return cleaned


def validate_update(patch):
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("No update data provided")
    unknown = sorted(set(patch) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")

    cleaned = {}
    for field in ID_SET_FIELDS:
        if field in patch:
            cleaned[field] = clean_id_list(patch[field], field)
    if 'checklist_items' in patch:
        cleaned['checklist_items'] = clean_checklist(patch['checklist_items'])
    if 'critical_patients' in patch:
        cleaned['critical_patients'] = clean_critical_patients(patch['critical_patients'])
    if 'general_notes' in patch:
        notes = patch['general_notes']
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("general_notes: must be text")
        cleaned['general_notes'] = notes
    if 'end_time' in patch:
        cleaned['end_time'] = _datetime_field(patch, 'end_time')
    if 'status' in patch:
        cleaned['status'] = _mutable_status(patch['status'])
    return cleaned


def validate_filters(filters, default_limit=20, max_limit=100):
    filters = dict(filters or {})
    page = filters.pop('page', 1)
    limit = filters.pop('limit', default_limit)
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError("page: must be an integer >= 1")
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
        raise ValidationError(f"limit: must be an integer between 1 and {max_limit}")

    cleaned = {}
    for field in ('hospital', 'service', 'created_by'):
        if filters.get(field):
            cleaned[field] = filters[field]
    if filters.get('status'):
        if filters['status'] not in HANDOVER_STATUSES:
            raise ValidationError(f"status: must be one of {', '.join(HANDOVER_STATUSES)}")
        cleaned['status'] = filters['status']
    if filters.get('shift_type'):
        cleaned['shift_type'] = _shift_type(filters['shift_type'])
    if filters.get('shift_date'):
        cleaned['shift_date'] = _datetime_field(filters, 'shift_date')
    return cleaned, page, limit
