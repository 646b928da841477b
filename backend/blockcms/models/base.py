import uuid
from blockcms.extensions import db
from blockcms.utils.timeutils import utcnow


def new_id():
    return str(uuid.uuid4())


class BaseModel(db.Model):
    """uuid primary key plus aware UTC creation and update times."""

    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<{type(self).__name__} {self.id}>"
