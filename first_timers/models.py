from datetime import date, datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

TASK_STATUSES = ('pending', 'in_progress', 'completed')
USER_ROLES = ('admin', 'staff', 'user')


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement off
    if type(dbapi_connection).__module__.startswith('sqlite3'):
        cur = dbapi_connection.cursor()
        cur.execute('PRAGMA foreign_keys=ON')
        cur.close()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class FirstTimer(TimestampMixin, db.Model):
    __tablename__ = 'first_timers'

    # JSON key -> column
    FIELDS = {
        'firstName': 'first_name',
        'lastName': 'last_name',
        'email': 'email',
        'phoneNumber': 'phone_number',
        'address': 'address',
        'city': 'city',
        'gender': 'gender',
        'heardFrom': 'heard_from',
        'visitingMember': 'visiting_member',
        'isStudent': 'is_student',
        'school': 'school',
        'prayerRequest': 'prayer_request',
        'dateOfBirth': 'date_of_birth',
        'serviceDate': 'service_date',
    }

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone_number = db.Column(db.String(40), nullable=False)
    address = db.Column(db.String(255))
    city = db.Column(db.String(120))
    gender = db.Column(db.String(20))
    heard_from = db.Column(db.String(120))
    visiting_member = db.Column(db.Boolean, nullable=False, default=False)
    is_student = db.Column(db.Boolean, nullable=False, default=False)
    school = db.Column(db.String(255))
    prayer_request = db.Column(db.Text)
    date_of_birth = db.Column(db.Date)
    service_date = db.Column(db.Date, nullable=False)

    follow_up_tasks = db.relationship(
        'FollowUpTask',
        back_populates='first_timer',
        cascade='all, delete-orphan',
        order_by='FollowUpTask.id',
    )

    def update_from(self, fields):
        """Apply already-validated column values, keyed by attribute name."""
        for attr, value in fields.items():
            setattr(self, attr, value)
        return self

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def summary(self):
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'serviceDate': _iso(self.service_date),
        }

    def to_dict(self, include_tasks=True):
        out = {'id': self.id}
        for key, attr in self.FIELDS.items():
            value = getattr(self, attr)
            out[key] = _iso(value) if isinstance(value, date) else value
        out['createdAt'] = _iso(self.created_at)
        out['updatedAt'] = _iso(self.updated_at)
        if include_tasks:
            out['followUpTasks'] = [t.to_dict(include_first_timer=False) for t in self.follow_up_tasks]
        return out


class FollowUpTask(TimestampMixin, db.Model):
    __tablename__ = 'follow_up_tasks'

    id = db.Column(db.Integer, primary_key=True)
    first_timer_id = db.Column(
        db.Integer,
        db.ForeignKey('first_timers.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    status = db.Column(
        db.Enum(*TASK_STATUSES, name='follow_up_status'),
        nullable=False,
        default='pending',
    )
    notes = db.Column(db.Text)
    assigned_to = db.Column(db.String(120))
    due_date = db.Column(db.Date)

    first_timer = db.relationship('FirstTimer', back_populates='follow_up_tasks')

    @validates('status')
    def _validate_status(self, key, value):
        if value not in TASK_STATUSES:
            raise ValueError(f'status must be one of: {", ".join(TASK_STATUSES)}')
        return value

    def update_from(self, fields):
        for attr, value in fields.items():
            setattr(self, attr, value)
        return self

    def to_dict(self, include_first_timer=True):
        out = {
            'id': self.id,
            'firstTimerId': self.first_timer_id,
            'status': self.status,
            'notes': self.notes,
            'assignedTo': self.assigned_to,
            'dueDate': _iso(self.due_date),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_first_timer and self.first_timer is not None:
            out['firstTimer'] = self.first_timer.summary()
        return out


class User(TimestampMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.Enum(*USER_ROLES, name='user_role'), nullable=False, default='user')

    @validates('role')
    def _validate_role(self, key, value):
        if value not in USER_ROLES:
            raise ValueError(f'role must be one of: {", ".join(USER_ROLES)}')
        return value

    def set_password(self, password):
        if not password:
            raise ValueError('password is required')
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return bool(password) and check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'role': self.role,
            'createdAt': _iso(self.created_at),
        }
