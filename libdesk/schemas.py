from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str
    password: str


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=80)
    password: str
    role: Literal['admin', 'staff']
    full_name: str = ''
    email: str = ''


class UserRead(BaseModel):
    id: int
    username: str
    role: str
    full_name: str = ''
    email: str = ''

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    email: str | None = None
    current_password: str | None = None
    new_password: str | None = None


class BranchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    code: str | None = None


class BranchRead(BaseModel):
    id: int
    name: str
    code: str | None = None

    class Config:
        from_attributes = True


class ScheduleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    description: str | None = None
    time: str = Field(min_length=1, max_length=40)
    event_date: date


class ScheduleUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    time: str | None = None
    event_date: date | None = None


class ScheduleRead(BaseModel):
    id: int
    title: str
    description: str | None = None
    time: str
    event_date: date
    created_at: datetime

    class Config:
        from_attributes = True


class SeatCreate(BaseModel):
    seat_numbers: str
    branch_id: int | None = None


class StudentPayload(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    branch_id: int
    membership_start: date
    membership_end: date
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    registration_number: str | None = None
    father_name: str | None = None
    aadhar_number: str | None = None
    profile_image_url: str | None = None
    total_fee: float = Field(default=0, ge=0)
    cash: float = Field(default=0, ge=0)
    online: float = Field(default=0, ge=0)
    security_money: float = Field(default=0, ge=0)
    remark: str | None = None
    seat_id: int | None = None
    shift_ids: list[int] = Field(default_factory=list)


class StudentCreate(StudentPayload):
    created_at: datetime | None = None


class StudentRenew(StudentPayload):
    payment_date: date | None = None


class StudentStatusUpdate(BaseModel):
    is_active: bool


class DuePaymentRequest(BaseModel):
    payment_amount: float = Field(gt=0, allow_inf_nan=False)
    payment_method: str


class ExpensePayload(BaseModel):
    title: str = Field(min_length=1, max_length=160)
    date: date
    cash: float = Field(default=0, ge=0, allow_inf_nan=False)
    online: float = Field(default=0, ge=0, allow_inf_nan=False)
    remark: str | None = None
    branch_id: int | None = None


class TransactionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    cash_receipt: float = 0
    online_receipt: float = 0
    cash_expense: float = 0
    online_expense: float = 0


class TransactionUpdate(BaseModel):
    name: str | None = None
    cash_receipt: float | None = None
    online_receipt: float | None = None
    cash_expense: float | None = None
    online_expense: float | None = None


class TransactionRead(BaseModel):
    id: int
    name: str
    cash_receipt: float
    online_receipt: float
    cash_expense: float
    online_expense: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdvancePaymentCreate(BaseModel):
    student_id: int
    amount: float = Field(gt=0, allow_inf_nan=False)
    payment_method: str
    payment_date: date | None = None
    notes: str | None = None
    branch_id: int | None = None


class AdvancePaymentUpdate(BaseModel):
    amount: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    payment_method: str | None = None
    payment_date: date | None = None
    notes: str | None = None
    status: Literal['active', 'fully_used', 'cancelled'] | None = None


class AdvancePaymentUseRequest(BaseModel):
    amount_to_use: float = Field(gt=0, allow_inf_nan=False)
    membership_history_id: int | None = None
    notes: str | None = None


class SettingsUpdate(BaseModel):
    registration_number_start: int | None = Field(default=None, ge=1)
    days_before_expiration: int | None = Field(default=None, ge=0, le=60)
    reminder_message: str | None = None


class HostelBranchPayload(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    address: str | None = None


class HostelStudentFields(BaseModel):
    address: str | None = None
    father_name: str | None = None
    mother_name: str | None = None
    aadhar_number: str | None = Field(default=None, pattern=r'^\d{12}$')
    phone_number: str | None = Field(default=None, pattern=r'^\d{10}$')
    profile_image_url: str | None = None
    aadhar_image_url: str | None = None
    registration_number: str | None = None
    remark: str | None = None


class HostelStudentCreate(HostelStudentFields):
    branch_id: int
    name: str = Field(min_length=1, max_length=120)
    religion: str = Field(min_length=1, max_length=40)
    food_preference: str = Field(min_length=1, max_length=40)
    gender: str = Field(min_length=1, max_length=20)
    room_number: str = Field(min_length=1, max_length=40)
    stay_start_date: date
    stay_end_date: date
    total_fee: float = Field(ge=0, allow_inf_nan=False)
    cash_paid: float = Field(default=0, ge=0, allow_inf_nan=False)
    online_paid: float = Field(default=0, ge=0, allow_inf_nan=False)
    security_money_cash: float = Field(default=0, ge=0, allow_inf_nan=False)
    security_money_online: float = Field(default=0, ge=0, allow_inf_nan=False)
    created_at: datetime | None = None


class HostelStudentUpdate(HostelStudentFields):
    branch_id: int | None = None
    name: str | None = Field(default=None, min_length=1, max_length=120)
    religion: str | None = Field(default=None, min_length=1, max_length=40)
    food_preference: str | None = Field(default=None, min_length=1, max_length=40)
    gender: str | None = Field(default=None, min_length=1, max_length=20)
    room_number: str | None = Field(default=None, max_length=40)
    stay_start_date: date | None = None
    stay_end_date: date | None = None
    total_fee: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    cash_paid: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    online_paid: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    security_money_cash: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    security_money_online: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class HostelRenewRequest(BaseModel):
    stay_start_date: date
    stay_end_date: date
    total_fee: float = Field(ge=0, allow_inf_nan=False)
    cash_paid: float = Field(default=0, ge=0, allow_inf_nan=False)
    online_paid: float = Field(default=0, ge=0, allow_inf_nan=False)
    room_number: str = Field(min_length=1, max_length=40)
    remark: str | None = None
    created_at: datetime | None = None


class HostelPaymentRequest(BaseModel):
    payment_amount: float = Field(gt=0, allow_inf_nan=False)
    payment_type: str


class ProductPayload(BaseModel):
    name: str = Field(min_length=1, max_length=160)
