# membership_app/models/admin.py

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseModel, TimestampMixin, db


class AdminLog(TimestampMixin, BaseModel):
    """Audit trail of operator actions (bulk imports, backfills, manual payments)."""

    __tablename__ = "admin_logs"

    id = db.Column(db.Integer, primary_key=True)
    admin_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    action = db.Column(db.String(100), nullable=False, index=True)
    target_member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=True)
    details = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)

    admin_user = db.relationship("User", foreign_keys=[admin_user_id])

    def __repr__(self):
        return f"<AdminLog {self.action} by {self.admin_user_id}>"

    @staticmethod
    def log_action(admin_user_id, action, target_member_id=None, details=None, ip_address=None, user_agent=None):
        """Record an operator action; failures are logged, never raised."""
        try:
            log = AdminLog(
                admin_user_id=admin_user_id,
                action=action,
                target_member_id=target_member_id,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            db.session.add(log)
            db.session.commit()
            return log
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Failed to record admin action {action}: {str(e)}")
            return None
