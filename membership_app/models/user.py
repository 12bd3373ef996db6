# membership_app/models/user.py

from flask_login import UserMixin

from .base import BaseModel, TimestampMixin, db


class User(UserMixin, TimestampMixin, BaseModel):
    """Operator account allowed into the admin import screens."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(320), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<User {self.username}>"

    def owns_email(self, email) -> bool:
        """True when ``email`` is this operator's own account address."""
        if not email or not self.email:
            return False
        return email.strip().lower() == self.email.strip().lower()
