# handover_pkg/audit/services.py
from ..models import AuditLog
from ..utils import utcnow

# Session.info key under which HandoverService records who performed a change.
AUDIT_ACTOR_KEY = 'audit_actor_id'


def write_audit_log(connection, action, target_model=None, target_id=None, change_details=None, user_id=None):
    """
    Inserts an audit log row on ``connection``.

    Listeners run inside a flush, where the Session must not be touched, so
    the row goes straight through the flushing connection and shares its
    transaction: a rolled-back operation leaves no audit trail behind.
    """
    connection.execute(
        AuditLog.__table__.insert().values(
            action=action,
            target_model=target_model,
            target_id=str(target_id) if target_id else None,
            change_details=change_details,
            user_id=str(user_id) if user_id else None,
            created_at=utcnow(),
        )
    )


def get_audit_trail(session, target_model, target_id):
    """Audit entries for one record, oldest first."""
    return session.query(AuditLog).filter_by(
        target_model=target_model, target_id=str(target_id)
    ).order_by(AuditLog.created_at.asc(), AuditLog.id.asc()).all()
