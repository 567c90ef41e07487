from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from libdesk.core.time_provider import utc_now
from libdesk.db import Base


class Role(str, Enum):
    ADMIN = 'admin'
    STAFF = 'staff'


class PaymentMethod(str, Enum):
    CASH = 'cash'
    ONLINE = 'online'


class AdvancePaymentStatus(str, Enum):
    ACTIVE = 'active'
    FULLY_USED = 'fully_used'
    CANCELLED = 'cancelled'


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=Role.STAFF.value, index=True)
    full_name: Mapped[str] = mapped_column(String(120), default='')
    email: Mapped[str] = mapped_column(String(160), default='', index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)


class Branch(Base):
    __tablename__ = 'branches'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), index=True)
    code: Mapped[str | None] = mapped_column(String(40), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    seats: Mapped[list['Seat']] = relationship('Seat', back_populates='branch')
    students: Mapped[list['Student']] = relationship('Student', back_populates='branch')


class Schedule(Base):
    """A shift: a recurring time slot a seat can be booked against."""

    __tablename__ = 'schedules'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(120), index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    time: Mapped[str] = mapped_column(String(40))
    event_date: Mapped[date] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    assignments: Mapped[list['SeatAssignment']] = relationship(
        'SeatAssignment',
        back_populates='shift',
        cascade='all, delete-orphan',
    )


class Seat(Base):
    __tablename__ = 'seats'
    __table_args__ = (
        UniqueConstraint('branch_id', 'seat_number', name='uq_seats_branch_seat_number'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    seat_number: Mapped[str] = mapped_column(String(40), index=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey('branches.id'), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    branch: Mapped['Branch | None'] = relationship('Branch', back_populates='seats')
    assignments: Mapped[list['SeatAssignment']] = relationship('SeatAssignment', back_populates='seat')


class Student(Base):
    __tablename__ = 'students'
    __table_args__ = (
        Index('ix_students_branch_membership_end', 'branch_id', 'membership_end'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), index=True)
    email: Mapped[str | None] = mapped_column(String(160), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(40), nullable=True, unique=True, index=True)
    father_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    aadhar_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey('branches.id'), index=True)
    membership_start: Mapped[date] = mapped_column(Date)
    membership_end: Mapped[date] = mapped_column(Date, index=True)
    total_fee: Mapped[float] = mapped_column(Float, default=0)
    cash: Mapped[float] = mapped_column(Float, default=0)
    online: Mapped[float] = mapped_column(Float, default=0)
    amount_paid: Mapped[float] = mapped_column(Float, default=0)
    due_amount: Mapped[float] = mapped_column(Float, default=0)
    security_money: Mapped[float] = mapped_column(Float, default=0)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)

    branch: Mapped['Branch'] = relationship('Branch', back_populates='students')
    assignments: Mapped[list['SeatAssignment']] = relationship(
        'SeatAssignment',
        back_populates='student',
        cascade='all, delete-orphan',
        order_by='SeatAssignment.id',
    )
    history: Mapped[list['MembershipHistory']] = relationship(
        'MembershipHistory',
        back_populates='student',
        order_by='MembershipHistory.id',
    )
    advance_payments: Mapped[list['AdvancePayment']] = relationship(
        'AdvancePayment',
        back_populates='student',
        cascade='all, delete-orphan',
    )


class SeatAssignment(Base):
    __tablename__ = 'seat_assignments'
    __table_args__ = (
        UniqueConstraint('seat_id', 'shift_id', name='uq_seat_assignments_seat_shift'),
        Index('ix_seat_assignments_student_shift', 'student_id', 'shift_id'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    seat_id: Mapped[int | None] = mapped_column(ForeignKey('seats.id'), nullable=True, index=True)
    shift_id: Mapped[int] = mapped_column(ForeignKey('schedules.id'), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id'), index=True)

    seat: Mapped['Seat | None'] = relationship('Seat', back_populates='assignments')
    shift: Mapped['Schedule'] = relationship('Schedule', back_populates='assignments')
    student: Mapped['Student'] = relationship('Student', back_populates='assignments')


class MembershipHistory(Base):
    """One collection record per enrollment/renewal; mutated only by pay-due."""

    __tablename__ = 'student_membership_history'
    __table_args__ = (
        Index('ix_membership_history_branch_changed', 'branch_id', 'changed_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int | None] = mapped_column(ForeignKey('students.id', ondelete='SET NULL'), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(120))
    email: Mapped[str | None] = mapped_column(String(160), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    father_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    aadhar_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    membership_start: Mapped[date] = mapped_column(Date)
    membership_end: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default='active')
    total_fee: Mapped[float] = mapped_column(Float, default=0)
    cash: Mapped[float] = mapped_column(Float, default=0)
    online: Mapped[float] = mapped_column(Float, default=0)
    amount_paid: Mapped[float] = mapped_column(Float, default=0)
    due_amount: Mapped[float] = mapped_column(Float, default=0)
    original_due: Mapped[float] = mapped_column(Float, default=0)
    security_money: Mapped[float] = mapped_column(Float, default=0)
    remark: Mapped[str] = mapped_column(Text, default='')
    seat_id: Mapped[int | None] = mapped_column(ForeignKey('seats.id', ondelete='SET NULL'), nullable=True)
    shift_id: Mapped[int | None] = mapped_column(ForeignKey('schedules.id', ondelete='SET NULL'), nullable=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey('branches.id'), nullable=True, index=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    student: Mapped['Student | None'] = relationship('Student', back_populates='history')
    shift: Mapped['Schedule | None'] = relationship('Schedule')
    branch: Mapped['Branch | None'] = relationship('Branch')


class PreviousDuePayment(Base):
    """A payment received in ``month_tag`` against a due that accrued in ``original_month``."""

    __tablename__ = 'previous_month_due_payments'
    __table_args__ = (
        Index('ix_previous_due_month_tag', 'month_tag', 'branch_id'),
        Index('ix_previous_due_original_month', 'original_month', 'branch_id'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    history_id: Mapped[int] = mapped_column(ForeignKey('student_membership_history.id', ondelete='CASCADE'), index=True)
    student_id: Mapped[int | None] = mapped_column(ForeignKey('students.id', ondelete='SET NULL'), nullable=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey('branches.id'), nullable=True)
    amount: Mapped[float] = mapped_column(Float)
    method: Mapped[str] = mapped_column(String(10))
    paid_at: Mapped[datetime] = mapped_column(DateTime)
    month_tag: Mapped[str] = mapped_column(String(7))
    original_month: Mapped[str] = mapped_column(String(7))

    student: Mapped['Student | None'] = relationship('Student')
    branch: Mapped['Branch | None'] = relationship('Branch')


class Expense(Base):
    __tablename__ = 'expenses'
    __table_args__ = (
        Index('ix_expenses_branch_date', 'branch_id', 'date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(160))
    amount: Mapped[float] = mapped_column(Float, default=0)
    cash: Mapped[float] = mapped_column(Float, default=0)
    online: Mapped[float] = mapped_column(Float, default=0)
    date: Mapped[date] = mapped_column(Date, index=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey('branches.id'), nullable=True)

    branch: Mapped['Branch | None'] = relationship('Branch')


class Transaction(Base):
    __tablename__ = 'transactions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160))
    cash_receipt: Mapped[float] = mapped_column(Float, default=0)
    online_receipt: Mapped[float] = mapped_column(Float, default=0)
    cash_expense: Mapped[float] = mapped_column(Float, default=0)
    online_expense: Mapped[float] = mapped_column(Float, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)


class AdvancePayment(Base):
    __tablename__ = 'advance_payments'
    __table_args__ = (
        Index('ix_advance_payments_student_status', 'student_id', 'status'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id'), index=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey('branches.id'), nullable=True, index=True)
    amount: Mapped[float] = mapped_column(Float)
    payment_method: Mapped[str] = mapped_column(String(10))
    payment_date: Mapped[date] = mapped_column(Date, index=True)
    used_amount: Mapped[float] = mapped_column(Float, default=0)
    status: Mapped[str] = mapped_column(String(20), default=AdvancePaymentStatus.ACTIVE.value, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    student: Mapped['Student'] = relationship('Student', back_populates='advance_payments')
    branch: Mapped['Branch | None'] = relationship('Branch')
    usages: Mapped[list['AdvancePaymentUsage']] = relationship(
        'AdvancePaymentUsage',
        back_populates='advance_payment',
        cascade='all, delete-orphan',
    )

    @property
    def remaining_amount(self) -> float:
        return max(float(self.amount or 0) - float(self.used_amount or 0), 0.0)


class AdvancePaymentUsage(Base):
    __tablename__ = 'advance_payment_usage'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    advance_payment_id: Mapped[int] = mapped_column(ForeignKey('advance_payments.id'), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id'), index=True)
    membership_history_id: Mapped[int | None] = mapped_column(
        ForeignKey('student_membership_history.id', ondelete='SET NULL'),
        nullable=True,
    )
    amount_used: Mapped[float] = mapped_column(Float)
    usage_type: Mapped[str] = mapped_column(String(30), default='renewal')
    usage_date: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    advance_payment: Mapped['AdvancePayment'] = relationship('AdvancePayment', back_populates='usages')
    membership_history: Mapped['MembershipHistory | None'] = relationship('MembershipHistory')


class Setting(Base):
    __tablename__ = 'settings'

    key: Mapped[str] = mapped_column(String(80), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default='')


class HostelBranch(Base):
    __tablename__ = 'hostel_branches'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    students: Mapped[list['HostelStudent']] = relationship('HostelStudent', back_populates='branch')


class HostelStudent(Base):
    __tablename__ = 'hostel_students'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey('hostel_branches.id'), index=True)
    name: Mapped[str] = mapped_column(String(120), index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    father_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    mother_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    aadhar_number: Mapped[str | None] = mapped_column(String(12), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    aadhar_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    religion: Mapped[str] = mapped_column(String(40))
    food_preference: Mapped[str] = mapped_column(String(40))
    gender: Mapped[str] = mapped_column(String(20))
    security_money: Mapped[float] = mapped_column(Float, default=0)
    security_money_cash: Mapped[float] = mapped_column(Float, default=0)
    security_money_online: Mapped[float] = mapped_column(Float, default=0)
    registration_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    room_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    branch: Mapped['HostelBranch'] = relationship('HostelBranch', back_populates='students')
    history: Mapped[list['HostelStudentHistory']] = relationship(
        'HostelStudentHistory',
        back_populates='student',
        cascade='all, delete-orphan',
        order_by='HostelStudentHistory.id',
    )


class HostelStudentHistory(Base):
    """One stay per admission/renewal; the hostel's collection record."""

    __tablename__ = 'hostel_student_history'
    __table_args__ = (
        Index('ix_hostel_history_student_end', 'student_id', 'stay_end_date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('hostel_students.id'), index=True)
    stay_start_date: Mapped[date] = mapped_column(Date)
    stay_end_date: Mapped[date] = mapped_column(Date)
    total_fee: Mapped[float] = mapped_column(Float, default=0)
    cash_paid: Mapped[float] = mapped_column(Float, default=0)
    online_paid: Mapped[float] = mapped_column(Float, default=0)
    due_amount: Mapped[float] = mapped_column(Float, default=0)
    security_money_cash: Mapped[float] = mapped_column(Float, default=0)
    security_money_online: Mapped[float] = mapped_column(Float, default=0)
    room_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    student: Mapped['HostelStudent'] = relationship('HostelStudent', back_populates='history')


class HostelExpense(Base):
    __tablename__ = 'hostel_expenses'
    __table_args__ = (
        Index('ix_hostel_expenses_branch_date', 'branch_id', 'date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(160))
    amount: Mapped[float] = mapped_column(Float, default=0)
    cash: Mapped[float] = mapped_column(Float, default=0)
    online: Mapped[float] = mapped_column(Float, default=0)
    date: Mapped[date] = mapped_column(Date, index=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey('hostel_branches.id'), nullable=True)

    branch: Mapped['HostelBranch | None'] = relationship('HostelBranch')


class Product(Base):
    __tablename__ = 'products'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
