# handover_pkg/audit/listeners.py
import logging

from sqlalchemy import event
from sqlalchemy.orm import attributes, object_session

from ..models import Handover, HANDOVER_FINALIZED
from .services import AUDIT_ACTOR_KEY, write_audit_log

logger = logging.getLogger(__name__)


def _actor(target):
    session = object_session(target)
    return session.info.get(AUDIT_ACTOR_KEY) if session is not None else None


@event.listens_for(Handover, 'after_insert')
def after_handover_insert(mapper, connection, target):
    """Listen for new Handover records."""
    write_audit_log(
        connection,
        action="HANDOVER_CREATE",
        target_model="Handover",
        target_id=target.id,
        change_details={
            "message": f"Handover created for {target.hospital}/{target.service} {target.shift_type}.",
            "status": target.status,
            "version": target.version,
        },
        user_id=_actor(target) or target.created_by,
    )


@event.listens_for(Handover, 'after_update')
def after_handover_update(mapper, connection, target):
    """Record status transitions; finalization gets its own action."""
    history = attributes.get_history(target, 'status')
    if not history.has_changes():
        return
    old_status = history.deleted[0] if history.deleted else None
    new_status = target.status
    action = "HANDOVER_FINALIZE" if new_status == HANDOVER_FINALIZED else "HANDOVER_STATUS_CHANGE"
    write_audit_log(
        connection,
        action=action,
        target_model="Handover",
        target_id=target.id,
        change_details={
            "status": {"old": old_status, "new": new_status},
            "version": target.version,
        },
        user_id=_actor(target),
    )


def register_audit_listeners():
    """Called by the app factory; importing this module is what attaches the listeners."""
    logger.debug("Handover audit listeners registered.")
