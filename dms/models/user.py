from dms import db
from dms.utils import utcnow

DEFAULT_ROLE = 'user'


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    phone_number = db.Column(db.String(16), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=True)
    role = db.Column(db.String(32), nullable=False, default=DEFAULT_ROLE)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_public_dict(self):
        return {
            'id': self.id,
            'mobile_number': self.phone_number,
            'name': self.name,
            'role': self.role,
        }

    def to_dict(self):
        data = self.to_public_dict()
        data['email'] = self.email
        data['last_login'] = self.last_login.isoformat() if self.last_login else None
        data['created_at'] = self.created_at.isoformat() if self.created_at else None
        return data
